"""Command-line interface for the mask packer."""

import argparse
import logging
import os
import sys

from .config import PackerConfig
from .core import (
    InvalidDimensionsError,
    Slot,
    get_output_path,
    load_source,
    make_preview,
    save_image,
    setup_logging,
    unique_path,
)
from .packing import default_output_dir, default_output_name, pack

logger = logging.getLogger("mask_packer")

DEFAULT_CONFIG_NAME = "maskbrew.yaml"

# argparse destination for each slot's source path and fallback value.
_SOURCE_ARGS = {
    Slot.METALLIC: ("metallic", "default_metallic"),
    Slot.AMBIENT_OCCLUSION: ("ao", "default_ao"),
    Slot.DETAIL_MASK: ("detail", "default_detail"),
    Slot.SMOOTHNESS: ("smoothness", "default_smoothness"),
}
_DEFAULTS_FIELDS = {
    Slot.METALLIC: "metallic",
    Slot.AMBIENT_OCCLUSION: "ambient_occlusion",
    Slot.DETAIL_MASK: "detail_mask",
    Slot.SMOOTHNESS: "smoothness",
}


def _unit_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}")
    if not (0.0 <= value <= 1.0):
        raise argparse.ArgumentTypeError(f"must be in [0, 1], got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="MaskBrew",
        description="Pack grayscale maps into an RGBA mask map "
                    "(R=Metallic, G=AO, B=Detail Mask, A=Smoothness)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  MaskBrew --metallic Rock_Metallic.png --ao Rock_AO.png --smoothness Rock_Rough.png --invert-smoothness
  MaskBrew --ao Crate_AO.png --default-metallic 0 -o out/CrateMask.png
  MaskBrew --config maskbrew.yaml --default-ao 0.8 --save-defaults
  MaskBrew --generate-config
        """
    )
    sources = parser.add_argument_group("sources")
    sources.add_argument("--metallic", "-m", help="Metallic map (packed into R)")
    sources.add_argument("--ao", "-a", help="Ambient occlusion map (packed into G)")
    sources.add_argument("--detail", "-d", help="Detail mask map (packed into B)")
    sources.add_argument("--smoothness", "-s", help="Smoothness/roughness map (packed into A)")

    defaults = parser.add_argument_group("fallback values")
    defaults.add_argument("--default-metallic", type=_unit_float)
    defaults.add_argument("--default-ao", type=_unit_float)
    defaults.add_argument("--default-detail", type=_unit_float)
    defaults.add_argument("--default-smoothness", type=_unit_float)
    defaults.add_argument("--invert-smoothness", action=argparse.BooleanOptionalAction,
                          default=None, help="Store 1 - value in A (roughness input)")
    defaults.add_argument("--reset-defaults", action="store_true",
                          help="Restore stock fallback values before applying overrides")
    defaults.add_argument("--save-defaults", action="store_true",
                          help="Write the resulting fallback values back to --config")

    parser.add_argument("--output", "-o", help="Output file path")
    parser.add_argument("--output-dir", help="Output folder (file name is derived)")
    parser.add_argument("--bits", type=int, choices=[8, 16], help="Output bit depth")
    parser.add_argument("--preview", help="Also write a small preview PNG here")
    parser.add_argument("--config", "-c", help="Path to config YAML")
    parser.add_argument("--generate-config", action="store_true",
                        help="Generate default config YAML")
    parser.add_argument("--dry-run", action="store_true",
                        help="Resolve sizes and output path without writing")
    parser.add_argument("--log-level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    return parser


def _apply_overrides(config: PackerConfig, args: argparse.Namespace) -> None:
    if args.reset_defaults:
        config.defaults.reset()
    for slot, (_, default_dest) in _SOURCE_ARGS.items():
        value = getattr(args, default_dest)
        if value is not None:
            setattr(config.defaults, _DEFAULTS_FIELDS[slot], value)
    if args.invert_smoothness is not None:
        config.defaults.invert_smoothness = args.invert_smoothness
    if args.bits is not None:
        config.output.bits = args.bits
    if args.log_level:
        config.log_level = args.log_level


def main(argv=None):
    """Parse CLI arguments, pack the mask map and write it."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.generate_config:
        dest = args.config or DEFAULT_CONFIG_NAME
        if os.path.isdir(dest):
            dest = os.path.join(dest, DEFAULT_CONFIG_NAME)
        PackerConfig().to_yaml(dest)
        logger.info("Generated default %s", dest)
        print(f"Generated default {dest}")
        return

    # Make early config warnings visible before full logging is configured.
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    if args.config and os.path.exists(args.config):
        try:
            config = PackerConfig.from_yaml(args.config)
        except ValueError as e:
            logger.error("Invalid config file '%s': %s", args.config, e)
            print(f"Error: Invalid config: {e}")
            sys.exit(1)
    elif args.config and not args.save_defaults:
        logger.error("Config file not found: %s", args.config)
        print(f"Error: Config file not found: {args.config}")
        sys.exit(1)
    else:
        config = PackerConfig()

    _apply_overrides(config, args)
    setup_logging(config.log_level, config.log_file or None)

    try:
        config.validate()
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    if args.save_defaults:
        if not args.config:
            print("Error: --save-defaults requires --config")
            sys.exit(1)
        config.to_yaml(args.config)
        logger.info("Saved fallback values to %s", args.config)

    sources = {}
    for slot, (path_dest, _) in _SOURCE_ARGS.items():
        path = getattr(args, path_dest)
        if not path:
            continue
        if not os.path.isfile(path):
            logger.error("%s map not found: %s", slot.label, path)
            print(f"Error: {slot.label} map not found: {path}")
            sys.exit(1)
        try:
            sources[slot] = load_source(path, max_pixels=config.max_image_pixels)
        except (IOError, ValueError) as e:
            logger.error("Cannot read %s map '%s': %s", slot.label, path, e)
            print(f"Error: Cannot read {slot.label} map: {e}")
            sys.exit(1)

    request = config.build_request(sources)
    try:
        packed, resolution = pack(request, config.default_size)
    except InvalidDimensionsError as e:
        logger.error("Packing aborted: %s", e)
        print(f"Error: {e}")
        sys.exit(2)

    for mismatch in resolution.mismatches:
        print(f"Warning: {mismatch.message()}")

    if args.output:
        out_path = args.output
    else:
        out_dir = args.output_dir or default_output_dir(request, config.output.default_dir)
        name = default_output_name(
            request, default=config.output.default_name, suffix=config.output.suffix,
        )
        out_path = get_output_path(out_dir, name, config.output.extension)
    if not config.output.overwrite:
        out_path = unique_path(out_path)

    if args.dry_run:
        logger.info("Dry run: would write %s (%s)", out_path, packed.describe())
        print(f"{out_path} ({packed.describe()})")
        return

    try:
        save_image(packed.pixels, out_path, bits=config.output.bits)
        if args.preview:
            preview = make_preview(packed.pixels, config.output.preview_size)
            save_image(preview.astype("float32") / 255.0, args.preview)
    except (IOError, OSError, ValueError, ImportError) as e:
        logger.error("Failed to save mask map '%s': %s", out_path, e)
        print(f"Error: Failed to save mask map: {e}")
        sys.exit(1)

    logger.info("Mask map saved to: %s (%s)", out_path, packed.describe())
    print(f"Mask map saved to: {out_path} ({packed.describe()})")


if __name__ == "__main__":
    main()
