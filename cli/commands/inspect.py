"""
acipatch CLI - Inspect Command
Usage: python -m cli.commands.inspect image.aci
"""
import argparse
import sys
from pathlib import Path
from acipatch.errors import AcipatchError
from acipatch.tools.inspector import Inspector
from acipatch.utils.logger import logger


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Show the manifest of an ACI without rewriting it"
    )
    parser.add_argument("input", nargs="?", help="Path to the .aci image (default: stdin)")

    args = parser.parse_args(argv)

    if args.input:
        path = Path(args.input)
        if not path.exists():
            logger.error(f"Image not found: {path}")
            sys.exit(1)

    try:
        if args.input:
            with open(args.input, 'rb') as f:
                Inspector().inspect(f)
        else:
            Inspector().inspect(sys.stdin.buffer)
    except AcipatchError as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.error(f"Inspection failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
