"""
 soap_tx_rx.py

 single threaded client for the SOAP over HTTP requests used by RealFlight FlightAxis

 Each request opens its own TCP connection, sends one POST and reads back one
 length framed reply. The connection is closed before request() returns or raises.
 There is no retry here, a failed request is reported to the caller as an
 ExchangeError and the caller decides whether to try again on its next frame.
"""

import re
import socket
import logging
from typing import NamedTuple

log = logging.getLogger(__name__)

SOAP_ENVELOPE = """<?xml version='1.0' encoding='UTF-8'?><soap:Envelope xmlns:soap='http://schemas.xmlsoap.org/soap/envelope/' xmlns:xsd='http://www.w3.org/2001/XMLSchema' xmlns:xsi='http://www.w3.org/2001/XMLSchema-instance'>
<soap:Body>
<{action}>{body}</{action}>
</soap:Body>
</soap:Envelope>"""

DEFAULT_ACTION_BODY = "<a>1</a><b>2</b>"

CONTENT_LENGTH_RE = re.compile(rb'Content-Length:[ \t]*(\d+)', re.IGNORECASE)
BODY_SEPARATOR = b'\r\n\r\n'


class ExchangeError(Exception):
    """Base class for every way a request/reply exchange can fail."""


class ConnectFailed(ExchangeError):
    pass


class NoReply(ExchangeError):
    pass


class MissingLengthHeader(ExchangeError):
    pass


class MissingBodySeparator(ExchangeError):
    pass


class ReplyTooLarge(ExchangeError):
    pass


class IncompleteBody(ExchangeError):
    pass


class SoapReply(NamedTuple):
    header: str          # status line and headers, without the blank line
    content_length: int  # as declared by the server
    body: str            # exactly content_length bytes, decoded as utf-8


def envelope(action, body=DEFAULT_ACTION_BODY):
    # the admin actions take two dummy arguments, ExchangeData passes its control inputs here
    return SOAP_ENVELOPE.format(action=action, body=body)


def build_request(action, payload):
    """
    Returns the complete HTTP POST for a SOAP action as bytes.
    content-length is the utf-8 byte count of the payload, not its character count.
    """
    data = payload.encode('utf-8')
    header = ("POST / HTTP/1.1\n"
              f"soapaction: '{action}'\n"
              f"content-length: {len(data)}\n"
              "content-type: text/xml;charset='UTF-8'\n"
              "Connection: Keep-Alive\n"
              "\n")
    return header.encode('utf-8') + data


class SoapClient:
    def __init__(self, addr, connect_timeout=1.0, first_read_timeout=1.0,
                 next_read_timeout=0.1, buffer_size=10000, connect_func=socket.create_connection):
        self.addr = addr  # (ip, port) tuple
        self.connect_timeout = connect_timeout
        self.first_read_timeout = first_read_timeout
        self.next_read_timeout = next_read_timeout
        self.buffer_size = buffer_size
        self.connect_func = connect_func

    def request(self, action, payload):
        """
        Send one SOAP action and return its SoapReply.
        Raises an ExchangeError subclass if no complete reply was received.
        """
        req = build_request(action, payload)
        log.debug("sending %s (%d bytes) to %s:%d", action, len(req), self.addr[0], self.addr[1])
        try:
            sock = self.connect_func(self.addr, self.connect_timeout)
        except OSError as e:
            log.warning("Unable to connect to %s:%d for %s: %s", self.addr[0], self.addr[1], action, e)
            raise ConnectFailed(f"connect to {self.addr[0]}:{self.addr[1]} failed: {e}") from e

        with sock:
            try:
                sock.sendall(req)
            except OSError as e:
                log.warning("Unable to send %s: %s", action, e)
                raise ConnectFailed(f"send of {action} failed: {e}") from e
            return self._read_reply(sock, action)

    def _read_reply(self, sock, action):
        buf = self._recv(sock, self.buffer_size, self.first_read_timeout)
        if not buf:
            log.warning("No data in reply to %s", action)
            raise NoReply(f"no data in reply to {action}")
        buf = bytearray(buf)

        # the header itself may arrive over several reads
        separator = buf.find(BODY_SEPARATOR)
        while separator < 0:
            if len(buf) >= self.buffer_size:
                log.warning("Reply too large, no end of header in %d bytes", len(buf))
                raise ReplyTooLarge(f"reply to {action} has no end of header in {len(buf)} bytes")
            fragment = self._recv(sock, self.buffer_size - len(buf), self.next_read_timeout)
            if not fragment:
                if CONTENT_LENGTH_RE.search(buf) is None:
                    log.warning("No Content-Length in reply to %s", action)
                    raise MissingLengthHeader(f"no Content-Length in reply to {action}")
                log.warning("No body in reply to %s", action)
                raise MissingBodySeparator(f"no header/body separator in reply to {action}")
            buf += fragment
            separator = buf.find(BODY_SEPARATOR)
        body_start = separator + len(BODY_SEPARATOR)

        match = CONTENT_LENGTH_RE.search(buf, 0, separator)
        if match is None:
            log.warning("No Content-Length in reply to %s", action)
            raise MissingLengthHeader(f"no Content-Length in reply to {action}")
        content_length = int(match.group(1))

        expected_length = body_start + content_length
        if expected_length > self.buffer_size:
            log.warning("Reply too large %d", expected_length)
            raise ReplyTooLarge(f"reply to {action} is {expected_length} bytes, limit is {self.buffer_size}")

        while len(buf) < expected_length:
            fragment = self._recv(sock, self.buffer_size - len(buf), self.next_read_timeout)
            if not fragment:
                log.warning("Reply to %s ended after %d of %d bytes", action, len(buf), expected_length)
                raise IncompleteBody(f"reply to {action} ended after {len(buf)} of {expected_length} bytes")
            buf += fragment

        header = bytes(buf[:separator]).decode('latin-1')
        body = bytes(buf[body_start:expected_length]).decode('utf-8', errors='replace')
        return SoapReply(header, content_length, body)

    @staticmethod
    def _recv(sock, max_bytes, timeout):
        # an empty result covers timeouts, resets and orderly close alike
        sock.settimeout(timeout)
        try:
            return sock.recv(max_bytes)
        except OSError as e:
            log.debug("recv failed: %s", e)
            return b''
