"""Internal constants shared across the library."""

DEFAULT_TOPIC_NAMESPACE = "markersync"
DEFAULT_TOPIC_NAME = "markers"

# Publish cadence of the reconciliation loop, in seconds.
DEFAULT_TICK_INTERVAL = 0.02

# Upper bound on batches queued by a transport while its sink is unavailable.
DEFAULT_PUBLISH_DEPTH = 100

DEFAULT_MQTT_PORT = 1883

CONTENT_TYPE_JSON = "application/json; charset=UTF-8"
