# flightaxis.py
# RealFlight FlightAxis connector, one request/reply exchange per frame

import time
import logging

from common.soap_tx_rx import SoapClient, ExchangeError, envelope
from . import flightaxis_cfg as config
from .flightaxis_mixer import ActuatorMixer, AirframeVariant
from .flightaxis_state import StateTranslator
from .flightaxis_telemetry import FlightAxisTelemetry, MissingKey
from .flightaxis_timing import FrameTimer
from .shared_types import AircraftInfo, ControllerSession, initial_state

log = logging.getLogger(__name__)

CONTROL_INPUTS = """
<pControlInputs>
<m-selectedChannels>255</m-selectedChannels>
<m-channelValues-0to1>
{items}
</m-channelValues-0to1>
</pControlInputs>
"""

# restore first so we can connect after the aircraft is changed in RealFlight
HANDSHAKE_ACTIONS = ('RestoreOriginalControllerDevice', 'InjectUAVControllerInterface')


def control_inputs(channels):
    items = "\n".join(f"<item>{value:.4f}</item>" for value in channels)
    return CONTROL_INPUTS.format(items=items)


def start_controller(client, session):
    """
    Asks FlightAxis to hand the aircraft over to us and returns the started session.
    The replies carry nothing we need so failures are logged and otherwise ignored.
    """
    log.info("Starting controller")
    for action in HANDSHAKE_ACTIONS:
        try:
            client.request(action, envelope(action))
        except ExchangeError as e:
            log.warning("%s failed: %s", action, e)
    return ControllerSession(started=True, handshakes=session.handshakes + 1)


class Sim:
    def __init__(self, frame='plane', sim_ip=None, sim_port=None, speedup=1.0,
                 report_state_cb=None, client=None, clock=time.time):
        self.name = "RealFlight"
        self.variant = AirframeVariant.from_frame(frame)
        self.report_state_cb = report_state_cb
        if sim_ip is None:
            sim_ip = config.FLIGHTAXIS_SERVER_IP
        if sim_port is None:
            sim_port = config.FLIGHTAXIS_SERVER_PORT
        if client is None:
            client = SoapClient((sim_ip, sim_port),
                                connect_timeout=config.CONNECT_TIMEOUT,
                                first_read_timeout=config.FIRST_READ_TIMEOUT,
                                next_read_timeout=config.NEXT_READ_TIMEOUT,
                                buffer_size=config.REPLY_BUFFER_SIZE)
        self.client = client
        self.session = ControllerSession()
        self.mixer = ActuatorMixer(self.variant)
        self.telemetry = FlightAxisTelemetry()
        self.translator = StateTranslator(self.variant, speedup)
        self.timer = FrameTimer(speedup, clock=clock)
        self.state = initial_state()
        self.last_error = None
        self.exchanges = 0  # successful exchanges
        self.last_connection_status = None
        log.info("%s connector for %s frame at %s:%d", self.name, self.variant.value,
                 client.addr[0], client.addr[1])

    @property
    def rate_hz(self):
        return self.timer.rate_hz

    def set_state_callback(self, callback):
        self.report_state_cb = callback

    def handshake(self):
        self.session = start_controller(self.client, self.session)
        return self.session

    def restart_session(self):
        # call when RealFlight has been restarted, control is requested again on the next frame
        log.info("Controller session will be restarted")
        self.session = ControllerSession(started=False, handshakes=self.session.handshakes)

    def exchange(self, servos):
        """
        Sends servo values and returns the TelemetryRecord from the reply.
        Raises an ExchangeError subclass if the frame failed; telemetry is then unchanged.
        """
        if not self.session.started:
            self.handshake()
        channels = self.mixer.mix(servos)
        reply = self.client.request('ExchangeData', envelope('ExchangeData', control_inputs(channels)))
        return self.telemetry.update(reply.body)

    def update(self, servos):
        """ runs one frame, returns the current StandardState """
        try:
            record = self.exchange(servos)
        except ExchangeError as e:
            # reason has already been logged where it was detected
            self.last_error = e
            record = None
        else:
            self.last_error = None
            self.exchanges += 1

        self.timer.advance()
        if record is not None:
            self.state = self.translator.update(record, self.timer.time_now)
        self.timer.report(self.state.position)
        self._report_connection_state()
        return self.state

    def reset_aircraft(self):
        try:
            self.client.request('ResetAircraft', envelope('ResetAircraft'))
        except ExchangeError as e:
            log.warning("ResetAircraft failed: %s", e)
            return False
        # aircraft is back at its start position
        self.translator.reset()
        return True

    def get_connection_state(self):
        if self.last_error is None and self.exchanges > 0:
            connection_status = "ok"
        elif isinstance(self.last_error, MissingKey):
            connection_status = "warning"
        else:
            connection_status = "nogo"

        if not self.telemetry.valid:
            data_status = "nogo"
        elif self.last_error is None:
            data_status = "ok"
        else:
            data_status = "warning"  # state is from an earlier frame

        if self.telemetry.valid:
            active = self.telemetry.record.controller_is_active > 0.5
            aircraft_info = AircraftInfo(status="ok" if active else "warning", name=self.variant.value)
        else:
            aircraft_info = AircraftInfo(status="nogo", name="Aircraft")

        return connection_status, data_status, aircraft_info

    def _report_connection_state(self):
        connection_status = self.get_connection_state()[0]
        if connection_status == self.last_connection_status:
            return
        self.last_connection_status = connection_status
        if self.report_state_cb:
            if self.last_error is None:
                self.report_state_cb(f"Receiving {self.name} telemetry")
            else:
                self.report_state_cb(f"{self.name} {type(self.last_error).__name__}: {self.last_error}")


""" the following is for testing """

def man():
    import argparse
    parser = argparse.ArgumentParser(description='RealFlight FlightAxis connector tester')
    parser.add_argument("-l", "--log",
                        dest="logLevel",
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help="Set the logging level")
    parser.add_argument("-a", "--addr",
                        dest="address",
                        default=config.FLIGHTAXIS_SERVER_IP,
                        help="Set the RealFlight ip address")
    parser.add_argument("-p", "--port",
                        dest="port",
                        type=int,
                        default=config.FLIGHTAXIS_SERVER_PORT,
                        help="Set the FlightAxis port")
    parser.add_argument("-f", "--frame",
                        dest="frame",
                        default='plane',
                        help="Frame name, containing 'heli' and/or 'rev4' to select those variants")
    parser.add_argument("-s", "--speedup",
                        dest="speedup",
                        type=float,
                        default=1.0,
                        help="Simulation speedup factor")
    parser.add_argument("-n", "--frames",
                        dest="frames",
                        type=int,
                        default=2000,
                        help="Number of frames to run")
    return parser


if __name__ == "__main__":
    args = man().parse_args()
    logging.basicConfig(format='%(asctime)s %(levelname)-8s %(name)s: %(message)s',
                        datefmt='%H:%M:%S',
                        level=args.logLevel or 'INFO')

    sim = Sim(args.frame, args.address, args.port, args.speedup)
    sim.set_state_callback(print)
    neutral = [1500, 1500, 1000, 1500, 1500, 1500, 1500, 1500]  # throttle on channel 3 at idle
    period = 1.0 / sim.rate_hz
    for i in range(args.frames):
        state = sim.update(neutral)
        time.sleep(period)
    print("final position", state.position, "attitude", state.attitude)
