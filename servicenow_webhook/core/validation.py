import re
from typing import List, Mapping

INTEGER_FIELDS = ("impact", "urgency")

# ASCII digits only; int() would also take "1_000", " 2 " and non-ASCII digits
INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def _is_integer(value: str) -> bool:
    return INTEGER_RE.fullmatch(value) is not None


def validate_incident(incident: Mapping) -> List[str]:
    """Return one message per field whose value ServiceNow would reject.

    Errors are advisory: the incident is still submitted with the value as is.
    """
    errors = []
    for field in INTEGER_FIELDS:
        value = incident.get(field)
        if value is None or value == "":
            continue
        if not _is_integer(str(value)):
            errors.append(
                f"'{field}' field value is {value} but should be an integer, "
                f"please fix your configuration. Incident creation/update will "
                f"proceed with this value."
            )
    return errors
