from typing import Any, Dict, List

from jinja2 import Environment, StrictUndefined
from loguru import logger

from servicenow_webhook.core.schemas import AlertmanagerPayload, Incident

# plain text output for ServiceNow fields, no HTML escaping
_env = Environment(undefined=StrictUndefined, keep_trailing_newline=True, autoescape=False)


def _sorted(mapping: Dict[str, str]) -> Dict[str, str]:
    return dict(sorted(mapping.items()))


def template_context(data: AlertmanagerPayload) -> Dict[str, Any]:
    """Expose the alert group under its Alertmanager JSON field names.

    Label and annotation maps are sorted by key so `for` loops render in a
    stable order.
    """
    context = data.model_dump()
    for field in ("groupLabels", "commonLabels", "commonAnnotations"):
        context[field] = _sorted(context[field])
    for alert in context["alerts"]:
        alert["labels"] = _sorted(alert["labels"])
        alert["annotations"] = _sorted(alert["annotations"])
    return context


def apply_template(name: str, text: str, data: AlertmanagerPayload) -> str:
    """Render `text` against the alert group.

    Raises jinja2.TemplateError on bad syntax or undefined references, and
    whatever the expression raises at runtime (TypeError on None and so on).
    `name` is attached to syntax errors so they trace back to the incident field.
    """
    if not text:
        return ""
    # same as Environment.from_string, but the template keeps its name
    code = _env.compile(text, name=name)
    template = _env.template_class.from_code(_env, code, _env.make_globals(None))
    return template.render(**template_context(data))


def apply_incident_template(incident: Incident, data: AlertmanagerPayload) -> List[str]:
    """Render every incident field in place. Returns the fields that failed."""
    failed = []
    for key, value in list(incident.items()):
        try:
            incident[key] = apply_template(key, str(value), data)
        except Exception as e:
            failed.append(key)
            incident[key] = ""
            logger.error(
                f"Error parsing default incident template for key:{key} value:{value}, error:{e}"
            )
    return failed
