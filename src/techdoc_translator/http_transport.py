#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# Copyright 2025 Emasoft
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
http_transport.py - requests adapter whose in-flight transfer can be aborted

Closing a requests session only drains the idle connections of its pools.
The connection serving a request is checked out of the pool, so a thread
blocked on it keeps waiting until the server answers or the read timeout
expires. AbortableHTTPAdapter records every connection its pools hand out
and abort() shuts their sockets down, which wakes the blocked thread with
a connection error.
"""

from __future__ import annotations

import functools
import logging
import socket
import threading
from typing import Any, Callable

from requests.adapters import HTTPAdapter
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

logger = logging.getLogger(__name__)


class _TrackingPoolMixin:
    """Reports each connection taken from the pool to ``on_connection``."""

    def __init__(self, *args: Any, on_connection: Callable[[Any], None], **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._on_connection = on_connection

    def _get_conn(self, timeout: float | None = None) -> Any:
        conn = super()._get_conn(timeout)  # type: ignore[misc]
        self._on_connection(conn)
        return conn


class TrackingHTTPConnectionPool(_TrackingPoolMixin, HTTPConnectionPool):
    pass


class TrackingHTTPSConnectionPool(_TrackingPoolMixin, HTTPSConnectionPool):
    pass


def shutdown_connection(conn: Any) -> None:
    """Shut down the socket of a urllib3 connection so blocked reads return at once."""
    sock = getattr(conn, "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug(f"Socket already closed: {e}")


class AbortableHTTPAdapter(HTTPAdapter):
    """HTTPAdapter with an abort() that tears down the connections in use."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._connections_lock = threading.Lock()
        self._connections: list[Any] = []
        self._aborted = False
        super().__init__(*args, **kwargs)

    @property
    def aborted(self) -> bool:
        return self._aborted

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": functools.partial(TrackingHTTPConnectionPool, on_connection=self._track),
            "https": functools.partial(TrackingHTTPSConnectionPool, on_connection=self._track),
        }

    def _track(self, conn: Any) -> None:
        with self._connections_lock:
            self._connections.append(conn)
            aborted = self._aborted
        if aborted:
            shutdown_connection(conn)

    def abort(self) -> None:
        """Shut down every connection handed out so far, and any taken later."""
        with self._connections_lock:
            self._aborted = True
            connections = list(self._connections)
        logger.debug(f"Aborting {len(connections)} HTTP connection(s)")
        for conn in connections:
            shutdown_connection(conn)
