"""Define typed configuration models for the mask packer.

Use `PackerConfig` to load, validate, and persist runtime settings. The
``defaults`` section holds the per-slot fallback values and the smoothness
inversion flag so they survive between runs.
"""

import os
import logging
import threading
import yaml
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from .core.naming import DEFAULT_NAME, MASK_SUFFIX
from .core.slots import Slot
from .core.sources import ImageSource
from .packing import DEFAULT_FALLBACKS, DEFAULT_SIZE, PackRequest

logger = logging.getLogger("mask_packer.config")


@dataclass
class DefaultsConfig:
    """Fallback value per slot, used when no source image is assigned."""

    metallic: float = DEFAULT_FALLBACKS[Slot.METALLIC]
    ambient_occlusion: float = DEFAULT_FALLBACKS[Slot.AMBIENT_OCCLUSION]
    detail_mask: float = DEFAULT_FALLBACKS[Slot.DETAIL_MASK]
    smoothness: float = DEFAULT_FALLBACKS[Slot.SMOOTHNESS]
    invert_smoothness: bool = False  # treat the A source as roughness

    def fallbacks(self) -> Dict[Slot, float]:
        return {
            Slot.METALLIC: float(self.metallic),
            Slot.AMBIENT_OCCLUSION: float(self.ambient_occlusion),
            Slot.DETAIL_MASK: float(self.detail_mask),
            Slot.SMOOTHNESS: float(self.smoothness),
        }

    def reset(self) -> None:
        """Restore the stock fallback values and clear inversion."""
        fresh = DefaultsConfig()
        self.metallic = fresh.metallic
        self.ambient_occlusion = fresh.ambient_occlusion
        self.detail_mask = fresh.detail_mask
        self.smoothness = fresh.smoothness
        self.invert_smoothness = fresh.invert_smoothness


@dataclass
class OutputConfig:
    """Store settings for naming and writing the packed texture."""

    default_dir: str = "."
    default_name: str = DEFAULT_NAME
    suffix: str = MASK_SUFFIX
    extension: str = ".png"
    bits: int = 8
    preview_size: int = 128
    overwrite: bool = True


_SUPPORTED_CONFIG_VERSION = 1
_VALID_EXTENSIONS = {".png", ".tga", ".tif", ".tiff", ".bmp"}


@dataclass
class PackerConfig:
    """Master mask packer configuration."""

    config_version: int = 1
    default_width: int = DEFAULT_SIZE[0]
    default_height: int = DEFAULT_SIZE[1]
    max_image_pixels: int = 67108864  # 8192x8192
    log_level: str = "INFO"
    log_file: str = ""

    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @property
    def default_size(self) -> Tuple[int, int]:
        return self.default_width, self.default_height

    def build_request(
        self, sources: Optional[Mapping[Slot, Optional[ImageSource]]] = None,
    ) -> PackRequest:
        """Combine the configured fallbacks with per-slot sources."""
        sources = sources or {}
        return PackRequest.from_sources(
            metallic=sources.get(Slot.METALLIC),
            ambient_occlusion=sources.get(Slot.AMBIENT_OCCLUSION),
            detail_mask=sources.get(Slot.DETAIL_MASK),
            smoothness=sources.get(Slot.SMOOTHNESS),
            fallbacks=self.defaults.fallbacks(),
            invert_smoothness=self.defaults.invert_smoothness,
        )

    @classmethod
    def from_yaml(cls, path: str) -> "PackerConfig":
        """Load configuration from YAML or return defaults."""
        if not os.path.exists(path):
            logger.info("Config file '%s' not found. Using defaults.", path)
            config = cls()
            config.validate()
            return config
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(
                f"Failed to parse YAML config '{path}': {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ValueError(
                f"Config file '{path}' must contain a YAML mapping, "
                f"got {type(data).__name__}"
            )
        yaml_version = data.get("config_version", 1)
        if isinstance(yaml_version, int) and yaml_version > _SUPPORTED_CONFIG_VERSION:
            logger.warning(
                "Config file '%s' has config_version=%d, but this build only "
                "supports up to version %d. Some settings may be ignored.",
                path, yaml_version, _SUPPORTED_CONFIG_VERSION,
            )
        config = cls()
        _merge_dict_to_dataclass(config, data)
        try:
            config.validate()
        except ValueError as exc:
            raise ValueError(f"{path}: {exc}") from exc
        return config

    def to_yaml(self, path: str):
        """Write configuration to a YAML file atomically."""
        import dataclasses
        data = dataclasses.asdict(self)
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        ext = os.path.splitext(path)[1]
        tmp_path = f"{path}.tmp.{os.getpid()}.{threading.get_ident()}{ext}"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass

    def validate(self):
        """Validate configuration values. Raises ValueError on invalid config."""
        errors = []

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(self.log_level).upper() not in valid_log_levels:
            errors.append(
                f"log_level must be one of {sorted(valid_log_levels)}, "
                f"got '{self.log_level}'"
            )
        if self.default_width < 1 or self.default_height < 1:
            errors.append("default_width and default_height must be >= 1")
        if self.max_image_pixels < 0:
            errors.append("max_image_pixels must be >= 0 (0 = unlimited)")

        # Fallbacks
        for name in ("metallic", "ambient_occlusion", "detail_mask", "smoothness"):
            value = getattr(self.defaults, name)
            if not (0.0 <= value <= 1.0):
                errors.append(f"defaults.{name} must be in [0, 1], got {value}")

        # Output
        if not self.output.default_name or not self.output.default_name.strip():
            errors.append("output.default_name must not be empty")
        if any(sep in self.output.default_name for sep in ("/", "\\")):
            errors.append("output.default_name must not contain path separators")
        if not self.output.suffix:
            errors.append("output.suffix must not be empty")
        ext = str(self.output.extension).lower()
        if ext not in _VALID_EXTENSIONS:
            errors.append(
                f"output.extension must be one of {sorted(_VALID_EXTENSIONS)}, "
                f"got '{self.output.extension}'"
            )
        if self.output.bits not in (8, 16):
            errors.append("output.bits must be 8 or 16")
        elif self.output.bits == 16 and ext != ".png":
            errors.append("output.bits=16 requires output.extension '.png'")
        if self.output.preview_size < 1:
            errors.append("output.preview_size must be >= 1")

        if errors:
            raise ValueError(
                "Configuration validation failed:\n" +
                "\n".join(f"  - {e}" for e in errors)
            )


def _merge_dict_to_dataclass(obj, data: dict, _path: str = ""):
    import dataclasses
    for key, value in data.items():
        full_key = f"{_path}{key}"
        if not hasattr(obj, key) or isinstance(getattr(type(obj), key, None), property):
            logger.warning("Unknown config key ignored: '%s'", full_key)
            continue
        field_val = getattr(obj, key)
        if dataclasses.is_dataclass(field_val):
            if isinstance(value, dict):
                _merge_dict_to_dataclass(field_val, value, f"{full_key}.")
            else:
                logger.warning(
                    "Config section '%s' must be a mapping, got %s. Using defaults.",
                    full_key, type(value).__name__,
                )
            continue
        if value is None and field_val is not None:
            logger.warning(
                "Config key '%s' is null but field default is %s. Using default value.",
                full_key, type(field_val).__name__,
            )
            continue
        expected_type = type(field_val)
        # Allow int->float and exact float->int promotion.
        if (not isinstance(value, expected_type)
                and not (expected_type is float and isinstance(value, int)
                         and not isinstance(value, bool))
                and not (expected_type is int and isinstance(value, float)
                         and value == int(value))):
            logger.warning(
                "Config type mismatch for '%s': expected %s, got %s (%r). "
                "Using default value.",
                full_key, expected_type.__name__, type(value).__name__, value,
            )
            continue
        if expected_type is int and isinstance(value, float):
            value = int(value)
        elif expected_type is float and isinstance(value, int):
            value = float(value)
        setattr(obj, key, value)
