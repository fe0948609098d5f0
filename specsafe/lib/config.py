"""
Configuration loaders for specsafe.

Loads project configuration from .specsafe/config.yaml. Missing keys fall
back to DEFAULT_CONFIG; a malformed file logs a warning and yields defaults.
"""

import logging
from dataclasses import dataclass, asdict
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = ".specsafe"
CONFIG_FILE = "config.yaml"

DEFAULT_CONFIG = {
    "project_name": "",
    "specs_dir": "specs",
    "default_author": "developer",
    "ears_threshold": 80,
    "backup_on_apply": True,
    "log_level": "INFO",
}

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class ProjectConfig:
    """Project-level configuration from .specsafe/config.yaml"""
    root: Path
    project_name: str
    specs_dir: str = "specs"           # Relative to root
    default_author: str = "developer"
    ears_threshold: int = 80           # Minimum EARS score for `specsafe ears`
    backup_on_apply: bool = True
    log_level: str = "INFO"

    @property
    def specs_path(self) -> Path:
        return self.root / self.specs_dir

    @property
    def active_dir(self) -> Path:
        return self.specs_path / "active"

    @property
    def completed_dir(self) -> Path:
        return self.specs_path / "completed"

    @property
    def archive_dir(self) -> Path:
        return self.specs_path / "archive"

    @property
    def deltas_dir(self) -> Path:
        return self.specs_path / "deltas"

    @property
    def applied_dir(self) -> Path:
        return self.deltas_dir / "applied"

    @property
    def backups_dir(self) -> Path:
        return self.specs_path / "backups"

    @property
    def qa_reports_dir(self) -> Path:
        return self.root / "qa-reports"

    @property
    def state_dir(self) -> Path:
        return self.root / CONFIG_DIR

    def spec_dirs(self) -> list[Path]:
        """Directories created by `specsafe init`."""
        return [
            self.active_dir,
            self.completed_dir,
            self.archive_dir,
            self.deltas_dir,
            self.applied_dir,
            self.backups_dir,
            self.qa_reports_dir,
            self.state_dir,
        ]

    def to_yaml_dict(self) -> dict:
        data = asdict(self)
        data.pop("root")
        return data


def get_config_path(root: Path) -> Path:
    return root / CONFIG_DIR / CONFIG_FILE


def load_project_config(root: Path) -> ProjectConfig:
    """Load .specsafe/config.yaml under root and return ProjectConfig.

    If the file doesn't exist, returns defaults with the project name taken
    from the root directory name.
    """
    values = DEFAULT_CONFIG.copy()
    values["project_name"] = root.resolve().name

    config_path = get_config_path(root)
    if config_path.exists():
        try:
            data = yaml.safe_load(config_path.read_text())
            if isinstance(data, dict):
                values.update({k: v for k, v in data.items() if k in DEFAULT_CONFIG})
            elif data is not None:
                logger.warning(f"Ignoring {config_path}: expected a mapping")
        except yaml.YAMLError as e:
            logger.warning(f"Failed to parse {config_path}: {e}")

    log_level = str(values["log_level"]).upper()
    if log_level not in VALID_LOG_LEVELS:
        logger.warning(f"Unknown log_level '{values['log_level']}', defaulting to INFO")
        log_level = "INFO"

    try:
        threshold = int(values["ears_threshold"])
    except (TypeError, ValueError):
        logger.warning(f"Invalid ears_threshold '{values['ears_threshold']}', defaulting to 80")
        threshold = DEFAULT_CONFIG["ears_threshold"]

    return ProjectConfig(
        root=root,
        project_name=str(values["project_name"] or root.resolve().name),
        specs_dir=str(values["specs_dir"]),
        default_author=str(values["default_author"]),
        ears_threshold=threshold,
        backup_on_apply=bool(values["backup_on_apply"]),
        log_level=log_level,
    )


def save_project_config(config: ProjectConfig) -> Path:
    """Write config back to .specsafe/config.yaml. Returns the path written."""
    config_path = get_config_path(config.root)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(yaml.safe_dump(config.to_yaml_dict(), sort_keys=False))
    return config_path
