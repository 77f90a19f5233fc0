"""
acipatch CLI - Patch Command
Usage: python -m cli.commands.patch [--name=example.com/app]
           [--capability=CAP_SYS_ADMIN,CAP_NET_ADMIN] < ACI_FILE > NEW_ACI_FILE
"""
import argparse
import sys
from pathlib import Path
from acipatch.compressor.codecs import CODECS
from acipatch.config import config
from acipatch.errors import AcipatchError
from acipatch.manifest.patcher import EditRequest
from acipatch.repacker.repacker import Repacker
from acipatch.utils.logger import logger, set_verbose


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rewrite an ACI with a patched manifest, streaming stdin to stdout"
    )
    parser.add_argument("--name", default="", help="Replace name, e.g. example.com/app")
    parser.add_argument("--capability", default="",
                        help="Add a capability retain-set isolator, e.g. CAP_SYS_ADMIN,CAP_NET_ADMIN")
    parser.add_argument("-i", "--input", help="Read the image from this file instead of stdin")
    parser.add_argument("-o", "--output", help="Write the image to this file instead of stdout")
    parser.add_argument("-c", "--compression", choices=('auto',) + CODECS, default=None,
                        help="Output compression (default: same as input)")
    parser.add_argument("--require-manifest", action="store_true", default=None,
                        help="Fail when the image has no manifest entry")
    parser.add_argument("--config", help="Path to an acipatch.config.json file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every entry")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        set_verbose()

    try:
        edits = EditRequest.from_options(name=args.name, capability=args.capability)
    except ValueError as e:
        parser.error(str(e))

    if args.config:
        from acipatch.config import AcipatchConfig
        settings = AcipatchConfig(args.config)
    else:
        settings = config

    input_path = Path(args.input) if args.input else None
    if input_path and not input_path.exists():
        logger.error(f"Input image not found: {input_path}")
        sys.exit(1)

    output_path = Path(args.output) if args.output else None

    repacker = Repacker(
        output_compression=args.compression or settings.output_compression,
        require_manifest=args.require_manifest or settings.require_manifest,
        settings=settings
    )

    src = open(input_path, 'rb') if input_path else sys.stdin.buffer
    dst = open(output_path, 'wb') if output_path else sys.stdout.buffer
    ok = False

    try:
        repacker.repack(src, dst, edits)
        ok = True

    except KeyboardInterrupt:
        logger.error("\nOperation cancelled by user.")
        sys.exit(130)
    except AcipatchError as e:
        logger.error(f"Patch failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)
    finally:
        if input_path:
            src.close()
        if output_path:
            dst.close()
            # A half-written archive is useless
            if not ok and output_path.exists():
                output_path.unlink()


if __name__ == "__main__":
    main()
