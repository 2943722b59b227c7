import socket

import pytest


class FakeSocket:
    """ replays scripted recv results; an empty script behaves like a read timeout """

    def __init__(self, fragments):
        self.fragments = list(fragments)
        self.sent = b''
        self.timeouts = []
        self.recv_sizes = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True

    def sendall(self, data):
        self.sent += data

    def settimeout(self, timeout):
        self.timeouts.append(timeout)

    def recv(self, max_bytes):
        self.recv_sizes.append(max_bytes)
        if not self.fragments:
            raise socket.timeout("timed out")
        item = self.fragments.pop(0)
        if isinstance(item, Exception):
            raise item
        return item[:max_bytes]


def http_reply(body, extra_headers=b''):
    return (b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/xml; charset=utf-8\r\n" + extra_headers +
            b"Content-Length: %d\r\n\r\n" % len(body) + body)


def split(data, count):
    size = -(-len(data) // count)
    return [data[i:i + size] for i in range(0, len(data), size)]


@pytest.fixture
def fake_connect():
    """ returns (connect_func, sockets) where sockets collects every FakeSocket handed out """
    sockets = []
    scripts = []

    def connect(addr, timeout):
        sock = FakeSocket(scripts.pop(0) if scripts else [])
        sockets.append(sock)
        return sock

    connect.scripts = scripts
    return connect, sockets
