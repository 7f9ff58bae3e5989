#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Test suite for http_transport module.
"""

import socket
from unittest.mock import Mock

from techdoc_translator.http_transport import (
    AbortableHTTPAdapter,
    TrackingHTTPConnectionPool,
    TrackingHTTPSConnectionPool,
    shutdown_connection,
)


class TestAbortableHTTPAdapter:
    """Test connection tracking and abort."""

    def test_pools_track_connections(self):
        adapter = AbortableHTTPAdapter()

        http_pool = adapter.poolmanager.connection_from_url("http://127.0.0.1:1")
        https_pool = adapter.poolmanager.connection_from_url("https://127.0.0.1:1")

        assert isinstance(http_pool, TrackingHTTPConnectionPool)
        assert isinstance(https_pool, TrackingHTTPSConnectionPool)
        conn = http_pool._get_conn()
        assert adapter._connections == [conn]
        adapter.close()

    def test_abort_shuts_down_connections_in_use(self):
        adapter = AbortableHTTPAdapter()
        conn = Mock()
        adapter._track(conn)

        adapter.abort()

        assert adapter.aborted
        conn.sock.shutdown.assert_called_once_with(socket.SHUT_RDWR)

    def test_connection_taken_after_abort(self):
        adapter = AbortableHTTPAdapter()
        adapter.abort()
        conn = Mock()

        adapter._track(conn)

        conn.sock.shutdown.assert_called_once_with(socket.SHUT_RDWR)


class TestShutdownConnection:
    """Test shutdown_connection."""

    def test_unconnected(self):
        shutdown_connection(Mock(sock=None))

    def test_already_closed(self):
        conn = Mock()
        conn.sock.shutdown.side_effect = OSError("Bad file descriptor")
        shutdown_connection(conn)
        conn.sock.shutdown.assert_called_once_with(socket.SHUT_RDWR)
