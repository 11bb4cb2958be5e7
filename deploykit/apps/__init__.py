"""Front-end applications."""
