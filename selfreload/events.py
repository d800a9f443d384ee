"""
Change events and platform-dependent trigger classification.

Observers don't agree on how "a file was replaced" looks: BSD-style kqueue
and FSEvents backends report the new file as created, inotify reports the
write. ``is_trigger`` maps (platform family, op) to a yes/no decision so the
watcher loop never has to care which backend it runs on.
"""

import enum
import os
import sys
from dataclasses import dataclass
from typing import Any, List, Optional

BSD = "bsd"
LINUX = "linux"
OTHER = "other"

_BSD_PREFIXES = ("darwin", "freebsd", "openbsd", "netbsd", "dragonfly")


class Op(enum.Flag):
    CREATE = enum.auto()
    WRITE = enum.auto()
    REMOVE = enum.auto()
    RENAME = enum.auto()
    CHMOD = enum.auto()


@dataclass(frozen=True)
class ChangeEvent:
    path: str
    op: Op


def platform_family(platform: Optional[str] = None) -> str:
    platform = platform if platform is not None else sys.platform
    if platform.startswith(_BSD_PREFIXES):
        return BSD
    if platform.startswith("linux"):
        return LINUX
    return OTHER


def trigger_op(family: str) -> Op:
    """Which op signals a finished replacement on this platform family."""
    if family == LINUX:
        return Op.WRITE
    # BSD family, and the untested fallback for everything else.
    return Op.CREATE


def is_trigger(family: str, op: Op) -> bool:
    return bool(op & trigger_op(family))


def _fs(path: Any) -> str:
    return os.fsdecode(path) if path else ""


def from_watchdog(event: Any, family: Optional[str] = None) -> List[ChangeEvent]:
    """
    Translate one watchdog ``FileSystemEvent`` into zero or more change events.

    inotify sends ``modified`` for attribute changes (IN_ATTRIB) as well as
    for partial writes, and ``closed`` once a file opened for writing is
    closed. On Linux only ``closed`` is a WRITE; ``modified`` is CHMOD there.
    A directory's ``modified`` only means its listing changed and is dropped.
    """
    family = family if family is not None else platform_family()
    kind = event.event_type
    src = _fs(event.src_path)

    if kind == "modified" and event.is_directory:
        return []
    if kind == "created":
        return [ChangeEvent(src, Op.CREATE)]
    if kind == "modified":
        return [ChangeEvent(src, Op.CHMOD if family == LINUX else Op.WRITE)]
    if kind == "closed":
        return [ChangeEvent(src, Op.WRITE)] if family == LINUX else []
    if kind == "deleted":
        return [ChangeEvent(src, Op.REMOVE)]
    if kind == "moved":
        # A rename onto a name shows up as that name being created.
        out = [ChangeEvent(src, Op.RENAME)]
        dest = _fs(getattr(event, "dest_path", ""))
        if dest:
            out.append(ChangeEvent(dest, Op.CREATE))
        return out
    # opened / closed_no_write
    return []
