from __future__ import annotations

import argparse
import os
import sys
import threading
from typing import List, Optional

import uvicorn

from plughost.core.config import ConfigFsPaths, ConfigManager
from plughost.core.errors import PlugHostError
from plughost.core.events import EventLogger
from plughost.core.logger import setup_logging
from plughost.core.plugins import PluginManager
from plughost.core.plugins.cli import keygen, plugins_errors_lines, plugins_list_lines, sign, static_routes_lines
from plughost.web.api import create_app


def _under(root: str, p: str) -> str:
    return p if os.path.isabs(p) else os.path.join(root, p)


def build_manager(cm: ConfigManager, root: str, logger) -> PluginManager:
    events = EventLogger(path=_under(root, cm.app().event_log_path))
    return PluginManager(cfg=cm.get(), root_dir=root, event_bus=events, logger=logger)


def _print(lines: List[str]) -> None:
    for line in lines:
        print(line)


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="plughost plugin discovery and trust validation")
    ap.add_argument("--root", default=".", help="Directory holding config/ and the plugin paths.")
    sub = ap.add_subparsers(dest="cmd")

    sub.add_parser("scan", help="Discover plugins and print the registry and errors.")

    sp = sub.add_parser("serve", help="Discover plugins and serve the read-only admin API.")
    sp.add_argument("--host", default="127.0.0.1")
    sp.add_argument("--port", type=int, default=8300)

    sg = sub.add_parser("sign", help="Write MANIFEST.txt for a plugin directory.")
    sg.add_argument("plugin_dir")
    sg.add_argument("--key", required=True, help="PEM Ed25519 private key.")
    sg.add_argument("--type", default="private", dest="signature_type")
    sg.add_argument("--org", default="")

    kg = sub.add_parser("keygen", help="Create an Ed25519 signing key.")
    kg.add_argument("path")

    args = ap.parse_args(argv)
    cmd = args.cmd or "scan"

    if cmd == "keygen":
        _print(keygen(args.path))
        return 0
    if cmd == "sign":
        _print(sign(args.plugin_dir, args.key, signature_type=args.signature_type, org=args.org))
        return 0

    cm = ConfigManager(fs=ConfigFsPaths(args.root))
    try:
        cm.load_all()
    except PlugHostError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    logger = setup_logging(_under(args.root, cm.app().log_dir))
    cm.logger = logger
    try:
        pm = build_manager(cm, args.root, logger)
        pm.init()
    except PlugHostError as e:
        logger.error(f"Plugin discovery failed: {e}")
        return 1

    if cmd == "scan":
        _print(plugins_list_lines(plugin_manager=pm))
        _print(plugins_errors_lines(plugin_manager=pm))
        _print(static_routes_lines(plugin_manager=pm))
        return 0

    stop = threading.Event()
    pm.start_update_checker(stop)
    server = uvicorn.Server(uvicorn.Config(create_app(pm, logger=logger), host=args.host, port=args.port, log_level="info"))
    try:
        server.run()
    finally:
        stop.set()
    return 0


if __name__ == "__main__":
    sys.exit(main())
