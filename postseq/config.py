# File: postseq/config.py
# Location: postseq/postseq/config.py

"""
Configuration management module.

This module handles loading configuration from a JSON file and turning the
flat key-value mapping into an immutable PipelineConfig that is built once,
before any stage or accumulator runs, and passed explicitly from then on.
All default values reside in config.json, which is included in the
installed package directory.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .pipeline_core.error_handling import ConfigurationError

REQUIRED_KEYS: Tuple[str, ...] = (
    "picard_path",
    "java_dir",
    "temp_dir",
    "max_records_in_ram",
    "max_heap_size",
    "validation_stringency",
)


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a JSON file.

    If no config_file is provided, the function attempts to load the
    'config.json' from the installed package directory. If it fails
    to find or parse the file, it raises an error.

    Parameters
    ----------
    config_file : str, optional
        Path to a configuration file in JSON format. If None, defaults to
        the package-installed 'config.json'.

    Returns
    -------
    dict
        Configuration dictionary loaded from the JSON file.

    Raises
    ------
    FileNotFoundError
        If the specified configuration file does not exist.
    ValueError
        If there is an error parsing the JSON configuration file.
    """
    if not config_file:
        config_file = os.path.join(os.path.dirname(__file__), "config.json")

    if not os.path.exists(config_file):
        raise FileNotFoundError(f"Configuration file '{config_file}' not found.")

    with open(config_file, "r", encoding="utf-8") as f:
        try:
            config = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error parsing JSON configuration: {e}")

    return config


@dataclass(frozen=True)
class PipelineConfig:
    """Settings shared by the alignment stages and the metrics accumulators.

    Attributes
    ----------
    picard_path : str
        Directory holding the Picard jars (SortSam.jar, MarkDuplicates.jar)
    java_dir : str
        Directory holding the custom jars (CIGARFixer, MateInfoFixer, BAMAnalyzer)
    temp_dir : str
        Scratch directory handed to the tools as TMP_DIR
    max_records_in_ram : int
        MAX_RECORDS_IN_RAM passed to the tools
    max_heap_size : str
        JVM heap option, e.g. "-Xmx8G"
    validation_stringency : str
        VALIDATION_STRINGENCY passed to the tools
    stage_timeout : float, optional
        Seconds a single stage may run before it is killed; None waits forever
    nbase_threshold : float
        Fraction of N bases at or above which a read counts as bad
    """

    picard_path: str
    java_dir: str
    temp_dir: str
    max_records_in_ram: int
    max_heap_size: str
    validation_stringency: str
    java_executable: str = "java"
    stage_timeout: Optional[float] = None
    nbase_threshold: float = 0.15
    stats_file: str = "BWA_Map_Stats.txt"
    stats_xml: str = "BAMAnalysisInfo.xml"
    duplicate_metrics_file: str = "markdup_metrics.txt"
    email_from: str = "sol-pipe@localhost"
    error_recipients: List[str] = field(default_factory=list)
    smtp_host: str = "localhost"

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "PipelineConfig":
        """Build and validate a PipelineConfig from a flat mapping.

        Parameters
        ----------
        config : Mapping[str, Any]
            Flat configuration, typically from load_config() plus CLI overrides

        Returns
        -------
        PipelineConfig
            Validated configuration

        Raises
        ------
        ConfigurationError
            If required keys are missing or values are out of range
        """
        missing = [
            key for key in REQUIRED_KEYS if config.get(key) is None or str(config[key]).strip() == ""
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration keys: {', '.join(missing)}", missing
            )

        try:
            max_records = int(config["max_records_in_ram"])
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"max_records_in_ram must be an integer, got {config['max_records_in_ram']!r}"
            )
        if max_records <= 0:
            raise ConfigurationError("max_records_in_ram must be positive")

        try:
            threshold = float(config.get("nbase_threshold", 0.15))
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"nbase_threshold must be a number, got {config.get('nbase_threshold')!r}"
            )
        if not 0.0 <= threshold <= 1.0:
            raise ConfigurationError(f"nbase_threshold must be within [0, 1], got {threshold}")

        timeout = config.get("stage_timeout")
        if timeout is not None:
            try:
                timeout = float(timeout)
            except (TypeError, ValueError):
                raise ConfigurationError(f"stage_timeout must be a number, got {timeout!r}")
            if timeout <= 0:
                raise ConfigurationError(f"stage_timeout must be positive, got {timeout}")

        recipients = config.get("error_recipients") or []
        if isinstance(recipients, str):
            recipients = [r.strip() for r in recipients.split(",") if r.strip()]

        known = {f for f in cls.__dataclass_fields__}
        values = {k: v for k, v in config.items() if k in known}
        values.update(
            max_records_in_ram=max_records,
            nbase_threshold=threshold,
            stage_timeout=timeout,
            error_recipients=list(recipients),
        )
        return cls(**values)
