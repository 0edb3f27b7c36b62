import os

import yaml

DEFAULT_CONFIG_PATH = os.getenv("INSTAPAY_OCR_CONFIG", "config.yaml")


def load_config_file(file_path=None):
    """
    Loads the configuration from the specified YAML file.

    Args:
        file_path (str): Path to the YAML configuration file. Defaults to
            $INSTAPAY_OCR_CONFIG or ./config.yaml.

    Returns:
        dict: Parsed configuration as a dictionary (empty for an empty file).
    """
    with open(file_path or DEFAULT_CONFIG_PATH, "r") as file:
        return yaml.safe_load(file) or {}


def load_config_or_default(file_path=None):
    """Same as load_config_file, but a missing file yields an empty config."""
    try:
        return load_config_file(file_path)
    except FileNotFoundError:
        return {}
