"""
Configuration loader and validator for publish workflows.

Loads YAML workflow files used by the CLI scripts and CI jobs and converts
them into a PublishConfig.

Example config file (deploy/publish.yaml):
    ```yaml
    version: "1.0"
    workflow: publish_and_sync

    gcs:
      bucket: static-site-assets
      key_filename: /secrets/publisher.json
      project_id: my-project

    source:
      base_dir: dist/
      patterns: ["**/*"]

    publish:
      public: true
      metadata:
        cacheControl: "public, max-age=300"

    sync:
      days: 14
    ```

Usage:
    >>> from gcs_publish.utils.config_loader import load_config, validate_config
    >>> config = load_config("deploy/publish.yaml")
    >>> errors = validate_config(config)
    >>> if not errors:
    ...     publish_config = build_publish_config(config)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from gcs_publish.utils.config import PublishConfig
from gcs_publish.utils.logging import get_logger

logger = get_logger(__name__)


# Supported config versions
SUPPORTED_VERSIONS = ["1.0"]

# Steps run by each workflow type, in order
WORKFLOW_STEPS = {
    "publish": ["publish"],
    "sync": ["sync"],
    "publish_and_sync": ["publish", "sync"],
}

# Valid workflow types
VALID_WORKFLOWS = list(WORKFLOW_STEPS)

GCS_FIELDS = ["bucket", "key_filename", "project_id"]
BOOLEAN_OPTIONS = ["verbose", "simulate", "wait_for_uploads"]


@dataclass
class ConfigIssue:
    """Validation problem in a configuration file."""

    field: str
    message: str
    value: Optional[Any] = None

    def __str__(self) -> str:
        """Format error message."""
        if self.value is not None:
            return f"{self.field}: {self.message} (got: {self.value})"
        return f"{self.field}: {self.message}"


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Dictionary containing parsed configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If the path is not a file or the file is empty
        yaml.YAMLError: If YAML is malformed
    """
    path = Path(config_path)
    logger.info(f"Loading configuration from: {path}")

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Configuration path is not a file: {path}")

    try:
        with open(path, "r") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML: {e}")
        raise

    if config is None:
        raise ValueError("Configuration file is empty")

    if not isinstance(config, dict):
        raise ValueError(f"Configuration must be a mapping, got {type(config).__name__}")

    logger.info(f"Configuration loaded: {config.get('workflow', 'unknown')}")
    return dict(config)


def validate_config(config: Dict[str, Any]) -> List[ConfigIssue]:
    """
    Validate configuration against expected schema.

    Args:
        config: Configuration dictionary to validate

    Returns:
        List of validation issues (empty if valid)
    """
    errors: List[ConfigIssue] = []

    if "version" not in config:
        errors.append(ConfigIssue("version", "Missing required field"))
    elif config["version"] not in SUPPORTED_VERSIONS:
        errors.append(
            ConfigIssue(
                "version",
                f"Unsupported version (supported: {SUPPORTED_VERSIONS})",
                config["version"],
            )
        )

    if "workflow" not in config:
        errors.append(ConfigIssue("workflow", "Missing required field"))
    elif config["workflow"] not in VALID_WORKFLOWS:
        errors.append(
            ConfigIssue(
                "workflow",
                f"Invalid workflow type (valid: {VALID_WORKFLOWS})",
                config["workflow"],
            )
        )

    errors.extend(_validate_gcs(config))
    errors.extend(_validate_source(config))
    errors.extend(_validate_options(config))

    workflow = config.get("workflow")
    if workflow in ("publish", "publish_and_sync"):
        errors.extend(_validate_publish(config))
    if workflow in ("sync", "publish_and_sync"):
        errors.extend(_validate_sync(config))

    if errors:
        logger.warning(f"Configuration validation failed with {len(errors)} errors")
    else:
        logger.info("Configuration validation passed")

    return errors


def _section(config: Dict[str, Any], name: str, errors: List[ConfigIssue]) -> Dict[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        errors.append(ConfigIssue(name, "Must be a mapping", type(section).__name__))
        return {}
    return section


def _validate_gcs(config: Dict[str, Any]) -> List[ConfigIssue]:
    """GCS settings may also come from the environment, so only types are checked."""
    errors: List[ConfigIssue] = []
    gcs = _section(config, "gcs", errors)

    for name in GCS_FIELDS:
        if name in gcs and not isinstance(gcs[name], str):
            errors.append(ConfigIssue(f"gcs.{name}", "Must be a string", type(gcs[name]).__name__))

    return errors


def _validate_source(config: Dict[str, Any]) -> List[ConfigIssue]:
    errors: List[ConfigIssue] = []
    source = _section(config, "source", errors)

    if "base_dir" in source and not isinstance(source["base_dir"], str):
        errors.append(
            ConfigIssue("source.base_dir", "Must be a string", type(source["base_dir"]).__name__)
        )

    patterns = source.get("patterns")
    if patterns is not None:
        if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
            errors.append(ConfigIssue("source.patterns", "Must be a list of strings", patterns))

    return errors


def _validate_options(config: Dict[str, Any]) -> List[ConfigIssue]:
    errors: List[ConfigIssue] = []
    options = _section(config, "options", errors)

    for name in BOOLEAN_OPTIONS:
        if name in options and not isinstance(options[name], bool):
            errors.append(
                ConfigIssue(f"options.{name}", "Must be a boolean", type(options[name]).__name__)
            )

    if "max_workers" in options:
        workers = options["max_workers"]
        if isinstance(workers, bool) or not isinstance(workers, int):
            errors.append(
                ConfigIssue("options.max_workers", "Must be an integer", type(workers).__name__)
            )
        elif workers < 1:
            errors.append(ConfigIssue("options.max_workers", "Must be at least 1", workers))

    return errors


def _validate_publish(config: Dict[str, Any]) -> List[ConfigIssue]:
    """Validate the publish section."""
    errors: List[ConfigIssue] = []
    publish = _section(config, "publish", errors)

    for name in ["public", "force"]:
        if name in publish and not isinstance(publish[name], bool):
            errors.append(
                ConfigIssue(f"publish.{name}", "Must be a boolean", type(publish[name]).__name__)
            )

    metadata = publish.get("metadata")
    if metadata is not None:
        if not isinstance(metadata, dict):
            errors.append(
                ConfigIssue("publish.metadata", "Must be a mapping", type(metadata).__name__)
            )
        else:
            for key, value in metadata.items():
                if not isinstance(value, str):
                    errors.append(
                        ConfigIssue(f"publish.metadata.{key}", "Must be a string", value)
                    )

    return errors


def _validate_sync(config: Dict[str, Any]) -> List[ConfigIssue]:
    """Validate the sync section."""
    errors: List[ConfigIssue] = []
    sync = _section(config, "sync", errors)

    if "days" in sync:
        days = sync["days"]
        if isinstance(days, bool) or not isinstance(days, (int, float)):
            errors.append(ConfigIssue("sync.days", "Must be a number", type(days).__name__))
        elif days <= 0:
            errors.append(ConfigIssue("sync.days", "Must be greater than 0", days))

    return errors


def build_publish_config(
    config: Dict[str, Any],
    defaults: Optional[PublishConfig] = None,
) -> PublishConfig:
    """
    Convert a validated workflow configuration into a PublishConfig.

    Settings missing from the file fall back to ``defaults`` (typically
    PublishConfig.from_env(require=False)).

    Args:
        config: Parsed workflow configuration
        defaults: Fallback configuration

    Returns:
        PublishConfig (required fields are checked by the operations)
    """
    base = defaults or PublishConfig(bucket="", key_filename="", project_id="")
    gcs = config.get("gcs") or {}
    options = config.get("options") or {}
    publish = config.get("publish") or {}
    sync = config.get("sync") or {}

    return base.with_overrides(
        bucket=gcs.get("bucket"),
        key_filename=gcs.get("key_filename"),
        project_id=gcs.get("project_id"),
        verbose=options.get("verbose"),
        simulate=options.get("simulate"),
        public=publish.get("public"),
        metadata=dict(publish["metadata"]) if publish.get("metadata") else None,
        force=publish.get("force"),
        days=sync.get("days"),
        max_workers=options.get("max_workers"),
        wait_for_uploads=options.get("wait_for_uploads"),
    )


def resolve_workflow(
    config_path: Optional[Union[str, Path]] = None,
) -> Tuple[PublishConfig, Dict[str, Any]]:
    """
    Resolve the PublishConfig for a run from an optional workflow file.

    The environment provides defaults; the workflow file overrides them.

    Args:
        config_path: Optional path to a YAML workflow file

    Returns:
        (PublishConfig, parsed workflow dict or {} without a file)

    Raises:
        ValueError: If the workflow file fails validation
    """
    env_config = PublishConfig.from_env(require=False)
    if not config_path:
        return env_config, {}

    workflow = load_config(config_path)
    errors = validate_config(workflow)
    if errors:
        details = "\n".join(f"  - {error}" for error in errors)
        raise ValueError(f"Invalid configuration file {config_path}:\n{details}")

    return build_publish_config(workflow, defaults=env_config), workflow


def workflow_steps(workflow: Dict[str, Any], default: str = "publish_and_sync") -> List[str]:
    """
    Steps a parsed workflow runs, in order.

    Args:
        workflow: Parsed workflow configuration ({} when no file was given)
        default: Workflow type assumed when the file names none

    Returns:
        List of step names ("publish", "sync")
    """
    return list(WORKFLOW_STEPS[workflow.get("workflow") or default])


def require_step(workflow: Dict[str, Any], step: str) -> None:
    """
    Check that a workflow file allows the given step.

    A run without a workflow file allows every step.

    Raises:
        ValueError: If the workflow type does not include the step
    """
    if not workflow:
        return

    name = workflow.get("workflow")
    if step not in workflow_steps(workflow):
        raise ValueError(
            f"Workflow '{name}' does not include the {step} step "
            f"(runs: {', '.join(WORKFLOW_STEPS[name])})"
        )


def get_config_examples() -> Dict[str, str]:
    """
    Get example configuration templates.

    Returns:
        Dictionary mapping example names to YAML templates
    """
    examples = {
        "publish": """version: "1.0"
workflow: publish

gcs:
  bucket: static-site-assets
  key_filename: /secrets/publisher.json
  project_id: my-project

source:
  base_dir: dist/
  patterns: ["**/*.br", "**/*.html", "images/**/*"]

publish:
  public: true
  metadata:
    cacheControl: "public, max-age=300"
""",
        "sync": """version: "1.0"
workflow: sync

gcs:
  bucket: static-site-assets
  key_filename: /secrets/publisher.json
  project_id: my-project

source:
  base_dir: dist/

sync:
  days: 14

options:
  simulate: true
  verbose: true
""",
        "publish_and_sync": """version: "1.0"
workflow: publish_and_sync

gcs:
  bucket: static-site-assets
  key_filename: /secrets/publisher.json
  project_id: my-project

source:
  base_dir: dist/

publish:
  metadata:
    cacheControl: "public, max-age=31536000, immutable"

sync:
  days: 30

options:
  max_workers: 16
  wait_for_uploads: false
""",
    }

    return examples
