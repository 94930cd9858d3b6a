class WebhookError(Exception):
    """Base class for errors that end a webhook call."""


class BadRequestError(WebhookError):
    """The request body is not a valid Alertmanager alert group."""


class ServiceNowError(WebhookError):
    """A call to the ServiceNow instance failed."""


class IncidentRecordError(ServiceNowError):
    """ServiceNow returned a record the workflow cannot use."""


class ConfigError(Exception):
    """The configuration file is missing, unparseable or incomplete."""
