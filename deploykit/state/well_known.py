"""Names of the state entries every deployment stage agrees on."""


class WellKnownStates:
    """Reserved state keys.

    The names are the keys used in state checkpoint files.
    """

    AGENT_PATH = "AgentPath"
    ARCHITECTURE = "Architecture"
    BOOT_DRIVE = "BootDrive"
    BOOTSTRAPPER_PATH = "BootstrapperPath"
    DEPLOYMENT_DIRECTORY = "DeploymentDirectory"
    DEPLOYMENT_SHARE = "DeploymentShare"
    DEPLOYMENT_SHARE_DOMAIN = "DeploymentShareDomain"
    DEPLOYMENT_SHARE_PASSWORD = "DeploymentSharePassword"
    DEPLOYMENT_SHARE_USER = "DeploymentShareUser"
    INSTALLATION_DIRECTORY = "InstallationDirectory"
    INSTALLATION_DISK = "InstallationDisk"
    INSTALLATION_IMAGE = "InstallationImage"
    INSTALLATION_IMAGE_INDEX = "InstallationImageIndex"
    PHASE = "Phase"
    PROGRESS = "Progress"
    SESSION_KEY = "SessionKey"
    STATE_FILE = "StateFile"
    TASK_SEQUENCE = "TaskSequence"
    WORKING_DIRECTORY = "WorkingDirectory"

    # Values of these keys never appear in log output.
    SENSITIVE = frozenset({DEPLOYMENT_SHARE_PASSWORD, SESSION_KEY})

    @classmethod
    def all(cls) -> list[str]:
        """All reserved keys."""
        return [
            value
            for name, value in vars(cls).items()
            if name.isupper() and isinstance(value, str)
        ]
