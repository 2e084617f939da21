from __future__ import annotations

from contextlib import contextmanager
import datetime
import math
import threading

import dateutil.parser
import dateutil.tz


def utcNow():
    return datetime.datetime.now(dateutil.tz.tzutc())


def asUtc(dtObj):
    if dtObj is None:
        return None
    if dtObj.tzinfo is None:
        return dtObj.replace(tzinfo=dateutil.tz.tzutc())
    return dtObj.astimezone(dateutil.tz.tzutc())


def dateTimeToDb(dtObj):
    if dtObj is None:
        return None
    return asUtc(dtObj).isoformat(timespec="microseconds")


def dateTimeFromDb(value):
    if not value:
        return None
    return asUtc(dateutil.parser.isoparse(value))


def roundHalfUp(value):
    return int(math.floor(value + 0.5))


def minutesBetween(start, end):
    """Whole minutes from start to end, rounding halves up."""
    seconds = (asUtc(end) - asUtc(start)).total_seconds()
    return roundHalfUp(seconds / 60.0)


class KeyedLock(object):
    """
    One re-entrant lock per key.

    Serializes work on a single job without blocking work on other jobs.
    Entries are dropped once nobody holds or waits on them.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    @contextmanager
    def locked(self, key):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.RLock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self):
        with self._guard:
            return len(self._locks)
