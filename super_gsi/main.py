import argparse
import os
import sys
from datetime import datetime
from pathlib import Path

from super_gsi.__version__ import __version__
from super_gsi.cli.prompts import Prompter
from super_gsi.logging import LoggerFactory, setup_logging
from super_gsi.services.pipeline import SwapPipeline
from super_gsi.storage.exceptions import SwapError, UserAbortedError
from super_gsi.storage.images import human_size

BANNER = (
    "================================================",
    "    Super.img Modification Script",
    "    For Termux - GSI Replacement",
    "================================================",
)

FLASH_INSTRUCTIONS = (
    "USAGE INSTRUCTIONS:",
    "1. Make a FULL BACKUP of your device before flashing",
    "2. Put the device in Download mode (Vol Up + Power)",
    "3. Open Odin on the computer",
    "4. Load {archive} in the AP slot",
    "5. Make sure Re-Partition is NOT checked",
    "6. Click Start to begin flashing",
    "7. After flashing, consider a factory reset",
)

SAFETY_TIPS = (
    "FINAL SAFETY TIPS:",
    "- Test on a secondary device first if possible",
    "- Keep the USB cable firmly connected while flashing",
    "- Do not interrupt the flash in Odin",
    "- Keep the original stock firmware at hand for recovery",
)


def warn_if_not_termux(log) -> bool:
    """Termux sets PREFIX; elsewhere only warn."""
    if os.environ.get("PREFIX"):
        return True
    log.warning("This script was designed for Termux")
    log.warning("Some features may not work correctly")
    return False


def print_summary(log, package: Path) -> None:
    log.success("================================================")
    log.success("    PROCESS COMPLETED SUCCESSFULLY!")
    log.success("================================================")
    log.info(f"Generated file: {package.name} ({human_size(package.stat().st_size)})")
    for line in FLASH_INSTRUCTIONS:
        log.warning(line.format(archive=package.name))
    log.success("lpmake warnings about 'sparse format' are normal")
    log.info(f"Location: {package}")
    log.info(f"Finished at: {datetime.now():%Y-%m-%d %H:%M:%S}")
    for line in SAFETY_TIPS:
        log.warning(line)


def main(argv=None, input_func=input):
    parser = argparse.ArgumentParser(
        description="Replace system.img inside an Android super.img with a GSI "
        "and build an Odin AP package"
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("--trace", action="store_true", help="Log raw output of external tools")
    parser.add_argument("--log-dir", type=Path, default=None, help="Directory for log files")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    setup_logging(debug=args.debug, trace=args.trace, log_dir=args.log_dir)
    log = LoggerFactory.for_system()

    warn_if_not_termux(log)
    for line in BANNER:
        print(line)
    print()

    pipeline = SwapPipeline(Prompter(input_func))
    try:
        package = pipeline.run()
    except UserAbortedError as error:
        log.info(f"Operation cancelled: {error}")
        return 1
    except SwapError as error:
        log.error(str(error))
        return 1
    except KeyboardInterrupt:
        log.error("Interrupted")
        return 1

    print_summary(log, package)
    return 0


if __name__ == "__main__":
    sys.exit(main())
