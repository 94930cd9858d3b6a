import os
from pathlib import Path
from typing import Any, Dict, List

import yaml
from loguru import logger
from pydantic import BaseModel, ValidationError, field_validator

from servicenow_webhook.core.errors import ConfigError

DEFAULT_CONFIG_FILE = "config/servicenow.yml"

# env var -> (section, field)
ENV_OVERRIDES = {
    "SERVICENOW_INSTANCE_NAME": ("service_now", "instance_name"),
    "SERVICENOW_USERNAME": ("service_now", "user_name"),
    "SERVICENOW_PASSWORD": ("service_now", "password"),
    "SERVICENOW_INCIDENT_GROUP_KEY_FIELD": ("workflow", "incident_group_key_field"),
}


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple, set)):
        value = [value]
    return [str(v) for v in value]


class ServiceNowConfig(BaseModel):
    instance_name: str = ""
    user_name: str = ""
    password: str = ""


class WorkflowConfig(BaseModel):
    incident_group_key_field: str = ""
    no_update_states: List[str] = []
    incident_update_fields: List[str] = []

    # YAML gives ints for states like [6, 7]; ServiceNow returns them as strings
    @field_validator("no_update_states", "incident_update_fields", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> List[str]:
        return _as_str_list(v)


class Config(BaseModel):
    service_now: ServiceNowConfig = ServiceNowConfig()
    workflow: WorkflowConfig = WorkflowConfig()
    default_incident: Dict[str, str] = {}

    @field_validator("default_incident", mode="before")
    @classmethod
    def _stringify_values(cls, v: Any) -> Dict[str, str]:
        if v is None:
            return {}
        if not isinstance(v, dict):
            return v
        return {str(k): "" if val is None else str(val) for k, val in v.items()}

    def validate_required(self) -> None:
        missing = []
        if not self.service_now.instance_name:
            missing.append("instance_name is missing")
        if not self.service_now.user_name:
            missing.append("user_name is missing")
        if not self.service_now.password:
            missing.append("password is missing")
        if not self.workflow.incident_group_key_field:
            missing.append("incident_group_key_field is missing")

        if missing:
            raise ConfigError("Config file is invalid\n" + "\n".join(missing))


def apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(data)
    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None:
            continue
        current = result.get(section)
        section_data = dict(current) if isinstance(current, dict) else {}
        section_data[field] = value
        result[section] = section_data
    return result


def load_config_content(content: str) -> Config:
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Config file is invalid\ntop level must be a mapping")

    data = apply_env_overrides(data)

    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Config file is invalid\n{e}") from e

    config.validate_required()
    logger.info("ServiceNow config loaded")
    return config


def load_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {path}")
    return load_config_content(config_path.read_text(encoding="utf-8"))
