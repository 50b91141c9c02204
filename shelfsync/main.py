# -*- coding: utf-8 -*-
# Calibre-Web Automated – fork of Calibre-Web
# Copyright (C) 2018-2025 Calibre-Web contributors
# Copyright (C) 2024-2025 Calibre-Web Automated contributors
# SPDX-License-Identifier: GPL-3.0-or-later
# See CONTRIBUTORS for full list of authors.

import argparse
import sys

from . import __version__, create_app, logger
from .config import Config


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description='Reading library and progress service',
                                     prog='shelfsync')
    parser.add_argument('-p', metavar='port', type=int, help='Port to listen on')
    parser.add_argument('-i', metavar='ip-address', help='Server IP-Address to listen')
    parser.add_argument('-d', metavar='database-url', help='SQLAlchemy URL of the library database')
    parser.add_argument('-c', metavar='path', help='Path and name of the guest cache file')
    parser.add_argument('-l', metavar='path', help='Path and name of the log file, /dev/stderr for console')
    parser.add_argument('-v', '--version', action='version', version='%(prog)s ' + __version__)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_arguments(argv)
    config = Config(port=args.p, host=args.i, database_url=args.d,
                    guest_cache_path=args.c, logfile=args.l)
    logger.setup(config.logfile, config.log_level)
    log = logger.create()
    log.info("Starting shelfsync %s, log level %s", __version__, logger.get_level_name(config.log_level))

    if not config.api_tokens:
        log.warning("No API tokens configured, every library request will be rejected")

    app = create_app(config)
    try:
        app.run(host=config.host, port=config.port)
    except OSError as e:
        log.error_or_exception("Cannot start server on {}:{}: {}".format(config.host, config.port, e))
        sys.exit(1)
