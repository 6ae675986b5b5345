import configparser
import logging
import os

# Shared configuration object; main() reads the config file into it once.
config = configparser.ConfigParser()

DEFAULT_CONFIG_PATH = os.path.expanduser("~/.papraIngest.conf")
DEFAULT_OPENROUTER_ENDPOINT = "https://openrouter.ai/api/v1"
DEFAULT_OPENROUTER_MODEL = "openai/gpt-5-nano"

REQUIRED_FIELDS = [
    ("PAPRA", "url"),
    ("PAPRA", "api_key"),
    ("PAPRA", "organization_id"),
]

# Environment variables win over the file for secrets
_ENV_OVERRIDES = {
    ("PAPRA", "api_key"): "PAPRA_API_KEY",
    ("OPENROUTER", "api_key"): "OPENROUTER_API_KEY",
}


def get_setting(section: str, key: str, fallback: str = "") -> str:
    env_name = _ENV_OVERRIDES.get((section, key))
    if env_name and os.getenv(env_name):
        return os.getenv(env_name, "").strip()
    try:
        value = config.get(section, key, fallback=fallback)
    except configparser.Error:
        value = fallback
    return (value or "").strip()


def openrouter_settings() -> dict:
    return {
        "endpoint": get_setting("OPENROUTER", "endpoint") or DEFAULT_OPENROUTER_ENDPOINT,
        "api_key": get_setting("OPENROUTER", "api_key"),
        "model_name": get_setting("OPENROUTER", "model_name") or DEFAULT_OPENROUTER_MODEL,
    }


def papra_settings() -> dict:
    return {
        "url": normalize_url(get_setting("PAPRA", "url")),
        "api_key": get_setting("PAPRA", "api_key"),
        "organization_id": get_setting("PAPRA", "organization_id"),
    }


def is_autotag_available() -> bool:
    return bool(openrouter_settings()["api_key"])


def normalize_url(url):
    """Add https:// when no scheme is given and drop trailing slashes."""
    if not url or not isinstance(url, str):
        return url
    normalized = url.strip()
    if not normalized.startswith(("http://", "https://")):
        normalized = "https://" + normalized
    return normalized.rstrip("/")


def is_config_valid() -> bool:
    return all(get_setting(section, key) for section, key in REQUIRED_FIELDS)


def load_config(path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Read `path` into the shared config. Returns False if the file is missing."""
    return bool(config.read(path))


def _ask(input_fn, message, current="", required=False):
    while True:
        suffix = f" [{current}]" if current else ""
        answer = input_fn(f"{message}{suffix}: ").strip()
        value = answer or current
        if value or not required:
            return value
        print(f"{message} is required")


def run_setup(path: str = DEFAULT_CONFIG_PATH, input_fn=input) -> configparser.ConfigParser:
    """Interactive wizard that writes the configuration file.

    Existing values are offered as defaults. Leaving an optional
    OpenRouter field blank removes it from the file.
    """
    config.read(path)
    print("\n=== papraIngest Configuration Setup ===\n")
    print(f"Configuration will be saved to: {path}\n")

    for section in ("PAPRA", "OPENROUTER"):
        if not config.has_section(section):
            config.add_section(section)

    url = _ask(input_fn, "Papra URL (https:// is added if no protocol is given)",
               config.get("PAPRA", "url", fallback=""), required=True)
    config.set("PAPRA", "url", normalize_url(url))
    config.set("PAPRA", "api_key", _ask(
        input_fn, "Papra API Key", config.get("PAPRA", "api_key", fallback=""), required=True))
    config.set("PAPRA", "organization_id", _ask(
        input_fn, "Papra Organization ID", config.get("PAPRA", "organization_id", fallback=""), required=True))

    print("\nOptional: AI Tagging Configuration (leave blank to skip)\n")
    for key, label in (
        ("endpoint", "OpenRouter Endpoint"),
        ("api_key", "OpenRouter API Key"),
        ("model_name", "OpenRouter Model Name"),
    ):
        current = config.get("OPENROUTER", key, fallback="")
        value = _ask(input_fn, f"{label} (optional, for AI tagging)", current)
        if value:
            config.set("OPENROUTER", key, value)
        else:
            config.remove_option("OPENROUTER", key)

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        config.write(handle)
    logging.info("Configuration saved to %s", path)
    return config
