"""
Main entry point for LiteRT Viewer.
"""

import sys
import logging
import argparse
from typing import Optional

import cv2

from . import __version__
from .catalog import Catalog
from .config import (
    Config, DEFAULT_CONFIG_PATH, ViewerConfig, load_config, save_example_config,
)
from .detector import Detector
from .inference import LiteRTInference
from .viewer import Viewer


logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    """
    Setup logging configuration.

    Args:
        level: Logging level
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='litert-viewer',
        description='Object detection demo on the LiteRT runtime'
    )
    parser.add_argument(
        '-c', '--config',
        default=DEFAULT_CONFIG_PATH,
        help='Path to configuration file'
    )
    parser.add_argument(
        '-d', '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    detect = subparsers.add_parser('detect', help='Annotate one image and write the results')
    detect.add_argument('model', help='Path to .tflite model')
    detect.add_argument('image', help='Path to image')
    detect.add_argument('--resized', help='Output path for the annotated model input')
    detect.add_argument('--original', help='Output path for the annotated original image')

    serve = subparsers.add_parser('serve', help='Start the web viewer')
    serve.add_argument('--host', help='Bind address')
    serve.add_argument('--port', type=int, help='Port')

    subparsers.add_parser('list', help='List discovered models and images')

    inspect = subparsers.add_parser('inspect', help='Show model input and output tensors')
    inspect.add_argument('model', help='Path to .tflite model')

    init_config = subparsers.add_parser('init-config', help='Write an example configuration')
    init_config.add_argument('path', help='Where to write the file')

    return parser


def run_detect(config: Config, args) -> int:
    """CLI variant: process one image and write both annotated images."""
    detector = Detector(args.model, config.inference)
    try:
        result = detector.process(args.image)
    finally:
        detector.cleanup()

    resized_path = args.resized or config.output.resized_path
    original_path = args.original or config.output.original_path
    for path, image in ((resized_path, result.resized), (original_path, result.original)):
        if not cv2.imwrite(path, image):
            raise OSError(f"Failed to write {path}")

    for det in result.detections:
        logger.info(
            f"  {det.label} {det.score:.2f} "
            f"({det.left}, {det.top}) - ({det.right}, {det.bottom})"
        )
    logger.info(f"Wrote {resized_path} and {original_path}")
    return 0


def run_serve(config: Config, args) -> int:
    overrides = {'host': args.host, 'port': args.port}
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        # Rebuild so command line values go through the same validation as YAML
        config.viewer = ViewerConfig(**{**config.viewer.model_dump(), **overrides})

    catalog = Catalog(
        config.inference.model_dir, config.images.directory, config.images.extension
    )
    if not catalog.models():
        logger.warning(f"No .tflite models found in {config.inference.model_dir}")

    Viewer(config, catalog).serve()
    return 0


def run_list(config: Config, args) -> int:
    catalog = Catalog(
        config.inference.model_dir, config.images.directory, config.images.extension
    )
    print("Models:")
    for name in catalog.models():
        print(f"  {name}")
    print("Images:")
    for path in catalog.images():
        print(f"  {path}")
    return 0


def run_inspect(config: Config, args) -> int:
    engine = LiteRTInference(
        args.model,
        num_threads=config.inference.num_threads,
        delegate_path=config.inference.delegate_path,
    )
    engine.initialize()
    try:
        for line in engine.describe():
            print(line)
    finally:
        engine.cleanup()
    return 0


def run_init_config(config: Optional[Config], args) -> int:
    save_example_config(args.path)
    print(f"Example configuration written to {args.path}")
    return 0


COMMANDS = {
    'detect': run_detect,
    'serve': run_serve,
    'list': run_list,
    'inspect': run_inspect,
}


def main(argv=None) -> int:
    """Parse arguments and dispatch the selected command."""
    args = build_parser().parse_args(argv)

    if args.command == 'init-config':
        setup_logging("DEBUG" if args.debug else "INFO")
        return run_command(run_init_config, None, args)

    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"ERROR: Failed to load configuration: {e}", file=sys.stderr)
        return 1

    log_level = "DEBUG" if args.debug else config.logging.level
    setup_logging(log_level)

    logger.info(f"LiteRT Viewer v{__version__}")

    return run_command(COMMANDS[args.command], config, args)


def run_command(command, config: Optional[Config], args) -> int:
    """Run a command, turning any failure into a logged fatal error and exit code 1."""
    try:
        return command(config, args)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=args.debug)
        return 1


if __name__ == '__main__':
    sys.exit(main())
