"""Load the pipeline configuration from the environment, once per process."""

import os
import re
from typing import List, Mapping, Optional

from pydantic import ValidationError

from .exceptions import ConfigurationError
from .logging_config import get_logger
from .models import DEFAULT_EXTENSIONS, PipelineConfig, SizeTarget

DEFAULT_MAX_RETRY = 3
SIZE_TOKEN_PATTERN = re.compile(r"^(\d+)x(\d+)$", re.IGNORECASE)
SEPARATOR_PATTERN = re.compile(r"[\s,;]+")


def parse_sizes(text: str) -> List[SizeTarget]:
    """
    Parse "100x100,200x150" (commas, semicolons or whitespace) into size targets.

    Raises:
        ConfigurationError: If a token is not WIDTHxHEIGHT with positive integers
    """
    sizes = []
    for token in SEPARATOR_PATTERN.split(text.strip()):
        if not token:
            continue
        match = SIZE_TOKEN_PATTERN.match(token)
        if not match:
            raise ConfigurationError(f"Invalid size {token!r}, expected WIDTHxHEIGHT")
        width, height = int(match.group(1)), int(match.group(2))
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"Invalid size {token!r}, dimensions must be positive")
        sizes.append(SizeTarget(width=width, height=height))
    return sizes


def _parse_max_retry(value: Optional[str]) -> int:
    # Missing or unparseable values fall back to the default
    try:
        return int(value) if value is not None else DEFAULT_MAX_RETRY
    except ValueError:
        return DEFAULT_MAX_RETRY


def load_config(environ: Optional[Mapping[str, str]] = None) -> PipelineConfig:
    """
    Build the PipelineConfig from environment variables.

    Environment Variables:
        Sizes: Required. Size targets, e.g. "100x100,200x200"
        AccessKeyID / SecretAccessKey: Static credentials (both or neither)
        Region / AWS_REGION: Region for the S3 client
        MaxRetries: Client retry attempts (default 3)
        SupportedExtensions: e.g. ".jpg,.jpeg"
        JpegQuality: Encoder quality (default 75)
        Resample: lanczos, bicubic or bilinear (default lanczos)
        debug: "true" enables debug logging

    Raises:
        ConfigurationError: If a required value is missing or invalid
    """
    env = os.environ if environ is None else environ

    sizes_text = env.get("Sizes", "").strip()
    if not sizes_text:
        raise ConfigurationError("Environment variable Sizes is required")
    sizes = parse_sizes(sizes_text)

    extensions_text = env.get("SupportedExtensions", "").strip()
    extensions = (
        tuple(SEPARATOR_PATTERN.split(extensions_text))
        if extensions_text
        else DEFAULT_EXTENSIONS
    )

    values = {
        "access_key_id": env.get("AccessKeyID") or None,
        "secret_access_key": env.get("SecretAccessKey") or None,
        "region": env.get("Region") or env.get("AWS_REGION") or None,
        "max_retry": _parse_max_retry(env.get("MaxRetries")),
        "sizes": tuple(sizes),
        "supported_extensions": extensions,
        "resample": env.get("Resample", "lanczos"),
        "debug": env.get("debug", "").lower() == "true",
    }
    if env.get("JpegQuality"):
        values["jpeg_quality"] = env["JpegQuality"]

    try:
        return PipelineConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _mask(secret: Optional[str]) -> str:
    if not secret:
        return "<unset>"
    return secret[:4] + "*" * max(0, len(secret) - 4)


def log_configuration(config: PipelineConfig) -> None:
    """Log the configuration with credentials masked."""
    logger = get_logger("thumbnails-pipeline.config")
    logger.info("CONFIGURATION:")
    logger.info(f"  AccessKeyID:     {_mask(config.access_key_id)}")
    logger.info(f"  SecretAccessKey: {'<set>' if config.secret_access_key else '<unset>'}")
    logger.info(f"  Region:          {config.region or '<from event>'}")
    logger.info(f"  Sizes:           {', '.join(str(s) for s in config.sizes)}")
    logger.info(f"  MaxRetries:      {config.max_retry}")
    logger.info(f"  Extensions:      {', '.join(config.supported_extensions)}")
    logger.info(f"  JpegQuality:     {config.jpeg_quality}")
    logger.info(f"  Resample:        {config.resample}")
