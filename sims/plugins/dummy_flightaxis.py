# dummy_flightaxis.py
# stands in for RealFlight when testing the FlightAxis connector without a simulator

import os
import re
import sys
import time
import socket
import logging
import threading

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..')))
from sims.flightaxis_telemetry import KEY_TABLE, FLAG_KEYS

log = logging.getLogger(__name__)

FLIGHTAXIS_PORT = 18083

REQUEST_HEADER_END_RE = re.compile(rb'\r?\n\r?\n')
CONTENT_LENGTH_RE = re.compile(rb'content-length:[ \t]*(\d+)', re.IGNORECASE)
SOAPACTION_RE = re.compile(rb"soapaction:[ \t]*'?([\w]+)'?", re.IGNORECASE)
ITEM_RE = re.compile(r'<item>([^<]*)</item>')

REPLY_ENVELOPE = """<?xml version="1.0" encoding="UTF-8"?>
<SOAP-ENV:Envelope xmlns:SOAP-ENV="http://schemas.xmlsoap.org/soap/envelope/" xmlns:xsd="http://www.w3.org/2001/XMLSchema" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
<SOAP-ENV:Body>
<{action}Response>
{body}
</{action}Response>
</SOAP-ENV:Body>
</SOAP-ENV:Envelope>"""


def element_text(key, value):
    # FlightAxis writes its flags as true/false, everything else as a number
    if isinstance(value, bool) or key in FLAG_KEYS:
        return "true" if value else "false"
    return str(value)


def telemetry_body(values, drop_keys=()):
    """ aircraft state elements in FlightAxis order, values is {key: number or bool} with missing keys sent as 0/false """
    lines = ["<m-aircraftState>"]
    for key, name in KEY_TABLE:
        if key in drop_keys:
            continue
        lines.append(f"<{key}>{element_text(key, values.get(key, 0))}</{key}>")
    lines.append("</m-aircraftState>")
    lines.append("<m-notifications><m-resetButtonHasBeenPressed>false</m-resetButtonHasBeenPressed></m-notifications>")
    return "\n".join(lines)


def http_reply(body):
    data = body.encode('utf-8')
    header = ("HTTP/1.1 200 OK\r\n"
              "Server: gSOAP/2.7\r\n"
              "Content-Type: text/xml; charset=utf-8\r\n"
              f"Content-Length: {len(data)}\r\n"
              "Connection: close\r\n"
              "\r\n")
    return header.encode('utf-8') + data


class DummyFlightAxis:
    def __init__(self, port=FLIGHTAXIS_PORT, host='127.0.0.1', fragments=1, fragment_delay=0.005):
        self.values = {}        # telemetry key -> value sent in ExchangeData replies
        self.drop_keys = set()  # keys left out of replies
        self.fragments = fragments  # number of sends each reply is split into
        self.fragment_delay = fragment_delay
        self.actions = []       # soap actions received, in order
        self.last_channels = None
        self.lock = threading.Lock()
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind((host, port))
        self.sock.listen(5)
        self.sock.settimeout(0.2)
        self.addr = self.sock.getsockname()
        self.running = True
        self.thread = threading.Thread(target=self.listener_thread)
        self.thread.daemon = True
        self.thread.start()
        log.debug("dummy FlightAxis listening on %s:%d", self.addr[0], self.addr[1])

    def listener_thread(self):
        while self.running:
            try:
                conn, addr = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break  # closed
            with conn:
                try:
                    self.service(conn)
                except OSError as e:
                    log.warning("dummy FlightAxis connection error: %s", e)

    def service(self, conn):
        conn.settimeout(1.0)
        data = b''
        while not REQUEST_HEADER_END_RE.search(data):
            chunk = conn.recv(4096)
            if not chunk:
                return
            data += chunk
        end = REQUEST_HEADER_END_RE.search(data)
        header = data[:end.start()]
        payload = data[end.end():]
        length = CONTENT_LENGTH_RE.search(header)
        expected = int(length.group(1)) if length else 0
        while len(payload) < expected:
            chunk = conn.recv(4096)
            if not chunk:
                return
            payload += chunk

        match = SOAPACTION_RE.search(header)
        action = match.group(1).decode() if match else ''
        payload = payload.decode('utf-8')
        with self.lock:
            self.actions.append(action)
            if action == 'ExchangeData':
                self.last_channels = [float(v) for v in ITEM_RE.findall(payload)]
            values = dict(self.values)
            drop_keys = set(self.drop_keys)

        if action == 'ExchangeData':
            body = telemetry_body(values, drop_keys)
        else:
            body = ""
        self.send_fragmented(conn, http_reply(REPLY_ENVELOPE.format(action=action, body=body)))

    def send_fragmented(self, conn, reply):
        size = -(-len(reply) // self.fragments)  # ceiling division
        for start in range(0, len(reply), size):
            conn.sendall(reply[start:start + size])
            if self.fragments > 1:
                time.sleep(self.fragment_delay)

    def close(self):
        self.running = False
        self.sock.close()
        self.thread.join(timeout=1.0)


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description='Dummy RealFlight FlightAxis server')
    parser.add_argument("-p", "--port", dest="port", type=int, default=FLIGHTAXIS_PORT,
                        help="Set the listening port")
    parser.add_argument("--fragments", dest="fragments", type=int, default=1,
                        help="Split each reply into this many sends")
    args = parser.parse_args()
    logging.basicConfig(level='DEBUG', format='%(asctime)s %(levelname)-8s %(message)s', datefmt='%H:%M:%S')

    server = DummyFlightAxis(args.port, '0.0.0.0', args.fragments)
    server.values = {"m-altitudeAGL-MTR": 0.3, "m-batteryVoltage-VOLTS": 12.6,
                     "m-isTouchingGround": True, "m-flightAxisControllerIsActive": True}
    print(f"Dummy FlightAxis listening on port {args.port}, ctrl-c to exit")
    try:
        while True:
            time.sleep(1)
            if server.last_channels:
                print("channels:", ', '.join(f"{c:.3f}" for c in server.last_channels))
    except KeyboardInterrupt:
        server.close()
