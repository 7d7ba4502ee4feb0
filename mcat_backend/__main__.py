"""
Run the catalog server: python -m mcat_backend --root /media/photos
"""
import argparse

from aiohttp import web

from .config import DEFAULT_ROOT, HTTP_HOST, HTTP_PORT, LOG_LEVEL
from .server import create_app
from .shared import get_logger, set_log_level

logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mcat_backend", description="Media catalog server")
    parser.add_argument("--root", default=DEFAULT_ROOT or None, help="Directory to catalog on startup")
    parser.add_argument("--host", default=HTTP_HOST)
    parser.add_argument("--port", type=int, default=HTTP_PORT)
    parser.add_argument("--log-level", default=LOG_LEVEL, help="DEBUG, INFO, SUCCESS, WARNING or ERROR")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    try:
        set_log_level(args.log_level)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    logger.info("Serving on http://%s:%d (root: %s)", args.host, args.port, args.root or "<none>")
    web.run_app(create_app(root=args.root), host=args.host, port=args.port, print=None)


if __name__ == "__main__":
    main()
