#
# Logging setup shared by the xocl subcommands
#
# Log to stderr or a rotating file, optionally mail errors, and pick the
# level from --debug/--verbose.
#

from __future__ import annotations

import getpass
import logging
import logging.handlers
import socket
from argparse import ArgumentParser, Namespace

DEFAULT_FORMAT = "%(asctime)s %(levelname)s: %(message)s"


def add_args(parser: ArgumentParser) -> None:
    """Add logger-related command line arguments."""
    grp = parser.add_argument_group("Logger Related Options")
    grp.add_argument("--logfile", type=str, metavar="filename", help="Name of logfile")
    grp.add_argument(
        "--log-bytes",
        type=int,
        default=10000000,
        metavar="length",
        help="Maximum logfile size in bytes",
    )
    grp.add_argument(
        "--log-count",
        type=int,
        default=3,
        metavar="count",
        help="Number of rotated logfiles to keep",
    )
    grp.add_argument(
        "--mail-to",
        action="append",
        metavar="foo@bar.com",
        help="Mail errors to this address (can be repeated)",
    )
    grp.add_argument("--mail-from", type=str, metavar="foo@bar.com", help="Sender of error mail")
    grp.add_argument("--mail-subject", type=str, metavar="subject", help="Error mail subject")
    grp.add_argument(
        "--smtp-host",
        type=str,
        default="localhost",
        metavar="foo.bar.com",
        help="SMTP server for error mail",
    )
    gg = grp.add_mutually_exclusive_group()
    gg.add_argument("--debug", action="store_true", help="Log decoding details")
    gg.add_argument("--verbose", action="store_true", help="Log progress messages")


def _level(args: Namespace, default: str) -> int | str:
    if args.debug:
        return logging.DEBUG
    if args.verbose:
        return logging.INFO
    return default


def _mail_handler(args: Namespace, formatter: logging.Formatter) -> logging.Handler:
    host = socket.getfqdn()
    sender = args.mail_from if args.mail_from is not None else f"{getpass.getuser()}@{host}"
    subject = args.mail_subject if args.mail_subject is not None else f"xocl error on {host}"
    handler = logging.handlers.SMTPHandler(args.smtp_host, sender, args.mail_to, subject)
    handler.setLevel(logging.ERROR)
    handler.setFormatter(formatter)
    return handler


def mk_logger(
    args: Namespace,
    fmt: str | None = None,
    name: str | None = None,
    log_level: str = "WARNING",
) -> logging.Logger:
    """Configure and return the logger named ``name`` (root by default)."""
    logger = logging.getLogger(name)
    logger.handlers.clear()

    formatter = logging.Formatter(fmt if fmt is not None else DEFAULT_FORMAT)

    ch: logging.Handler
    if args.logfile:
        ch = logging.handlers.RotatingFileHandler(
            args.logfile,
            maxBytes=args.log_bytes,
            backupCount=args.log_count,
        )
    else:
        ch = logging.StreamHandler()

    level = _level(args, log_level)
    logger.setLevel(level)
    ch.setLevel(level)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    if args.mail_to is not None:
        logger.addHandler(_mail_handler(args, formatter))

    # Decoder data-quality warnings go through the same handlers
    logging.captureWarnings(True)

    return logger
