"""Cryptforge CLI entry point.

Provides subcommands for generating a single level to JSON (or an ASCII
preview) and for running the level API server. Accepts configuration via flags
and ``CRYPTFORGE_*`` environment variables, with optional .env loading.

Run `python run.py --help` for details.
"""

import argparse
import json
import os
import signal
import sys
from textwrap import dedent

from colorama import Fore, Style
from colorama import init as _color_init
from dotenv import load_dotenv

# Disable colors if output is not a real terminal (e.g., during pytest capture)
_COLOR_ENABLED = sys.stdout.isatty()
if _COLOR_ENABLED:
    _color_init()


def _version() -> str:
    from cryptforge import __version__

    return __version__


def parse_args(argv: list[str]) -> argparse.Namespace:
    description = """
    Cryptforge level generator

    Generate a tile-based dungeon level from a room catalog (or the built-in
    maze generator) and print it as JSON, or serve generation over HTTP.
    CLI flags take precedence over environment variables.
    """

    epilog = dedent(
        """
        Environment variables:
          HOST                        Bind address for the web server (default: 0.0.0.0)
          PORT                        Port for the web server (default: 5000)
          CRYPTFORGE_SEED             Default level seed (default: level-1)
          CRYPTFORGE_WIDTH            Map width in cells (default: 50)
          CRYPTFORGE_HEIGHT           Map height in cells (default: 50)
          CRYPTFORGE_CORRIDOR_WIDTH   Corridor width in cells (default: 1)
          CRYPTFORGE_MAX_DOOR_WIDTH   Door width clamp (default: 6)
          CRYPTFORGE_CATALOG          Room catalog JSON file or directory
          CRYPTFORGE_TILE_PROPERTIES  Tile properties JSON used for collision stamping
          CRYPTFORGE_LOG_LEVEL        debug | info | warn | error (default: info)
          CRYPTFORGE_LOG_JSON         1 to emit JSON log lines

        Examples:
          # Maze-mode level as an ASCII preview
          python run.py generate --seed s1 --ascii

          # Template-mode level written to a file
          python run.py generate --seed s1 --catalog rooms/ --out level.json

          # Run the level API on a custom port
          python run.py server --port 8080
        """
    )

    parser = argparse.ArgumentParser(
        prog="Cryptforge",
        description=dedent(description),
        epilog=epilog,
        formatter_class=argparse.RawTextHelpFormatter,
    )

    parser.add_argument(
        "--env-file",
        dest="env_file",
        help="Path to a .env file to load before processing flags",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Cryptforge {_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # generate subcommand
    gen_parser = subparsers.add_parser(
        "generate",
        help="Generate one level and print it as JSON",
        formatter_class=argparse.RawTextHelpFormatter,
        description="Generate one level. Uses the room catalog when given, the maze generator otherwise.",
    )
    gen_parser.add_argument("--seed", default=None, help="Level seed (default: env CRYPTFORGE_SEED or level-1)")
    gen_parser.add_argument(
        "--catalog",
        default=None,
        help="Room catalog JSON file or directory of room_*.json (default: env CRYPTFORGE_CATALOG)",
    )
    gen_parser.add_argument(
        "--tile-properties",
        dest="tile_properties",
        default=None,
        help="Tile properties JSON (default: env CRYPTFORGE_TILE_PROPERTIES)",
    )
    gen_parser.add_argument("--width", type=int, default=None, help="Map width in cells")
    gen_parser.add_argument("--height", type=int, default=None, help="Map height in cells")
    gen_parser.add_argument("--corridor-width", dest="corridor_width", type=int, default=None, help="Corridor width")
    gen_parser.add_argument("--out", default=None, help="Write JSON to this file instead of stdout")
    gen_parser.add_argument("--ascii", action="store_true", help="Print an ASCII preview instead of JSON")
    gen_parser.set_defaults(command="generate")

    # server subcommand
    server_parser = subparsers.add_parser(
        "server",
        help="Run the level API web server",
        formatter_class=argparse.RawTextHelpFormatter,
        description="Run the Flask level API server",
    )
    server_parser.add_argument(
        "--host",
        default=None,
        help="Host interface to bind (default: env HOST or 0.0.0.0)",
    )
    server_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (default: env PORT or 5000)",
    )
    server_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable Flask debug mode with verbose error pages",
    )
    server_parser.set_defaults(command="server")

    # If no subcommand provided, default to server
    if len(argv) == 0:
        argv = ["server"]

    args = parser.parse_args(argv)
    return args


def _paint(text, color) -> str:
    return f"{color}{text}{Style.RESET_ALL}" if _COLOR_ENABLED else str(text)


def _banner(mode: str, rows) -> str:
    divider = _paint("=" * 40, Fore.MAGENTA)
    lines = [divider, "  " + _paint("Cryptforge " + mode.capitalize(), Fore.CYAN + Style.BRIGHT), divider]
    for name, val in rows:
        lines.append(f"  {_paint(name + ':', Fore.YELLOW):12} {_paint(val, Fore.GREEN)}")
    lines += [divider, ""]
    return "\n".join(lines)


def run_generate(args) -> int:
    from cryptforge.errors import ConfigError
    from cryptforge.generation import config_from_env, generate_level, load_catalog, load_tile_properties
    from cryptforge.logging_utils import log

    overrides = {
        k: getattr(args, k)
        for k in ("seed", "width", "height", "corridor_width")
        if getattr(args, k, None) is not None
    }
    catalog_path = args.catalog or os.getenv("CRYPTFORGE_CATALOG")
    props_path = args.tile_properties or os.getenv("CRYPTFORGE_TILE_PROPERTIES")
    try:
        cfg = config_from_env().with_overrides(overrides)
        catalog = load_catalog(catalog_path) if catalog_path else None
        props = load_tile_properties(props_path) if props_path else None
        level = generate_level(cfg, catalog, props)
    except ConfigError as exc:
        print(f"{_paint('[ERROR]', Fore.RED)} {exc}", file=sys.stderr)
        log.error(event="generate_failed", error=str(exc))
        return 2

    if args.ascii:
        print(level.to_ascii())
        return 0
    payload = json.dumps(level.to_dict(), indent=2)
    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(payload)
        print(f"{_paint('[INFO]', Fore.CYAN)} Wrote {args.out} ({len(level.rooms)} rooms, mode={level.mode})")
    else:
        print(payload)
    return 0


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    if getattr(args, "env_file", None):
        load_dotenv(args.env_file)
    else:
        # Load default .env if present (no error if missing)
        load_dotenv()

    mode = (getattr(args, "command", None) or "server").lower()

    from cryptforge.logging_utils import log

    if mode == "generate":
        log.info(event="startup", mode=mode, seed=args.seed or os.getenv("CRYPTFORGE_SEED") or "default")
        return run_generate(args)

    host = getattr(args, "host", None) or os.getenv("HOST", "0.0.0.0")
    port = int(getattr(args, "port", None) or os.getenv("PORT", "5000"))
    debug = bool(getattr(args, "debug", False) or os.getenv("FLASK_DEBUG") == "1")
    catalog = os.getenv("CRYPTFORGE_CATALOG") or "none (maze mode)"

    def handle_sigint(sig, frame):
        print("\n[INFO] Shutting down server...")
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_sigint)

    print(_banner(mode, [("Host", host), ("Port", port), ("Catalog", catalog), ("Debug", "YES" if debug else "NO")]))
    log.info(event="startup", mode=mode, host=host, port=port, catalog=catalog)

    from cryptforge.server import start_server

    print(f"{_paint('[INFO]', Fore.CYAN)} Listening for connections... Press Ctrl+C to stop.")
    log.info(event="listen", host=host, port=port, debug=debug)
    start_server(host=host, port=port, debug=debug)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
