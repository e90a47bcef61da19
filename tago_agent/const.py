"""Constants for the TAGO.io telemetry agent."""

from typing import Final

DOMAIN: Final = "tago_agent"

# --- Network (link) defaults ---
DEFAULT_LINK_POLL_INTERVAL: Final = 0.5  # seconds between association polls
DEFAULT_LINK_MAX_ATTEMPTS: Final = 20  # ~10 s before the fatal restart

# --- MQTT defaults ---
DEFAULT_BROKER_HOST: Final = "mqtt.tago.io"
DEFAULT_BROKER_PORT: Final = 8883
DEFAULT_MQTT_USERNAME: Final = "MQTTTuser"
DEFAULT_MQTT_KEEPALIVE: Final = 15
DEFAULT_RECEIVE_BUFFER_SIZE: Final = 1024
DEFAULT_CONNECT_TIMEOUT: Final = 20
DEFAULT_RECONNECT_BACKOFF: Final = 5
DEFAULT_CHANNELS: Final = ("data", "info")

# MQTT fixed header (max 5) + topic length prefix (2)
MQTT_MAX_HEADER_SIZE: Final = 5
MQTT_TOPIC_LENGTH_PREFIX: Final = 2

# --- Transport state codes (PubSubClient compatible) ---
MQTT_CONNECTION_TIMEOUT: Final = -4
MQTT_CONNECTION_LOST: Final = -3
MQTT_CONNECT_FAILED: Final = -2
MQTT_DISCONNECTED: Final = -1
MQTT_CONNECTED: Final = 0
MQTT_CONNECT_BAD_PROTOCOL: Final = 1
MQTT_CONNECT_BAD_CLIENT_ID: Final = 2
MQTT_CONNECT_UNAVAILABLE: Final = 3
MQTT_CONNECT_BAD_CREDENTIALS: Final = 4
MQTT_CONNECT_UNAUTHORIZED: Final = 5

TRANSPORT_STATE_NAMES: Final = {
    MQTT_CONNECTION_TIMEOUT: "Connection Timeout",
    MQTT_CONNECTION_LOST: "Connection Lost",
    MQTT_CONNECT_FAILED: "Connect Failed",
    MQTT_DISCONNECTED: "Disconnected",
    MQTT_CONNECTED: "Connected",
    MQTT_CONNECT_BAD_PROTOCOL: "Protocol",
    MQTT_CONNECT_BAD_CLIENT_ID: "ID Rejected",
    MQTT_CONNECT_UNAVAILABLE: "Server Unavailable",
    MQTT_CONNECT_BAD_CREDENTIALS: "Bad User/Password",
    MQTT_CONNECT_UNAUTHORIZED: "Not Authorized",
}

# --- Scheduling ---
DEFAULT_PUBLISH_INTERVAL_MS: Final = 10 * 1000
DEFAULT_TICK_INTERVAL: Final = 0.1  # seconds
DEFAULT_PAYLOAD_CAPACITY: Final = 1024  # bytes, hard platform bound

# --- Configuration keys ---
CONF_NETWORK: Final = "network"
CONF_SSID: Final = "ssid"
CONF_PASSWORD: Final = "password"
CONF_INTERFACE: Final = "interface"
CONF_POLL_INTERVAL: Final = "poll_interval"
CONF_MAX_ATTEMPTS: Final = "max_attempts"

CONF_BROKER: Final = "broker"
CONF_HOST: Final = "host"
CONF_PORT: Final = "port"
CONF_TLS: Final = "tls"
CONF_TLS_INSECURE: Final = "tls_insecure"
CONF_KEEPALIVE: Final = "keepalive"
CONF_RECEIVE_BUFFER_SIZE: Final = "receive_buffer_size"
CONF_CONNECT_TIMEOUT: Final = "connect_timeout"
CONF_RECONNECT_BACKOFF: Final = "reconnect_backoff"

CONF_DEVICE: Final = "device"
CONF_DEVICE_ID: Final = "device_id"
CONF_TOKEN: Final = "token"
CONF_USERNAME: Final = "username"
CONF_DISPLAY_NAME: Final = "display_name"
CONF_FIRMWARE_VERSION: Final = "firmware_version"

CONF_CHANNELS: Final = "channels"
CONF_PUBLISH_INTERVAL_MS: Final = "publish_interval_ms"
CONF_TICK_INTERVAL: Final = "tick_interval"
CONF_PAYLOAD_CAPACITY: Final = "payload_capacity"
CONF_FAN_OUT: Final = "fan_out"

CONF_MEASUREMENTS: Final = "measurements"
CONF_VARIABLE: Final = "variable"
CONF_UNIT: Final = "unit"
CONF_SOURCE: Final = "source"
CONF_MAXIMUM: Final = "maximum"

# --- Measurement sources ---
SOURCE_RANDOM: Final = "random"
SOURCE_CPU_TEMPERATURE: Final = "cpu_temperature"
SOURCE_CPU_PERCENT: Final = "cpu_percent"
SOURCE_MEMORY_PERCENT: Final = "memory_percent"
SOURCE_DISK_PERCENT: Final = "disk_percent"

MEASUREMENT_SOURCES: Final = (
    SOURCE_RANDOM,
    SOURCE_CPU_TEMPERATURE,
    SOURCE_CPU_PERCENT,
    SOURCE_MEMORY_PERCENT,
    SOURCE_DISK_PERCENT,
)

DEFAULT_MEASUREMENTS: Final = (
    {CONF_VARIABLE: "temperature", CONF_UNIT: "C", CONF_SOURCE: SOURCE_RANDOM, CONF_MAXIMUM: 300},
    {CONF_VARIABLE: "pressure", CONF_UNIT: "Bar", CONF_SOURCE: SOURCE_RANDOM, CONF_MAXIMUM: 3000},
)

# --- Payload variable names (dashboard facing) ---
KEY_DEVICE_NAME: Final = "DeviceName"
KEY_FIRMWARE_VERSION: Final = "FirmWareVersion"
KEY_SIGNAL_STRENGTH: Final = "WiFiRSSI"
KEY_ADDRESS: Final = "IP"

UNIT_NONE: Final = ""
UNIT_DECIBEL: Final = "dB"

NULL_ADDRESS: Final = "0.0.0.0"
