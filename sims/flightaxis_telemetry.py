# flightaxis_telemetry.py
# extracts the FlightAxis state fields from an ExchangeData reply body

import re
import logging
from typing import NamedTuple

from common.soap_tx_rx import ExchangeError

log = logging.getLogger(__name__)

"""
FlightAxis returns its aircraft state as flat leaf elements inside the SOAP body, e.g.
    <m-airspeed-MPS>12.5</m-airspeed-MPS>
Each key below is the element name, paired with the TelemetryRecord field it fills.
The table order is the order FlightAxis sends them in but lookup is by name,
a reply with the fields in a different order parses the same.
"""
KEY_TABLE = (
    ("m-airspeed-MPS", "airspeed_mps"),
    ("m-altitudeASL-MTR", "altitude_asl_m"),
    ("m-altitudeAGL-MTR", "altitude_agl_m"),
    ("m-groundspeed-MPS", "groundspeed_mps"),
    ("m-pitchRate-DEGpSEC", "pitch_rate_dps"),
    ("m-rollRate-DEGpSEC", "roll_rate_dps"),
    ("m-yawRate-DEGpSEC", "yaw_rate_dps"),
    ("m-azimuth-DEG", "azimuth_deg"),
    ("m-inclination-DEG", "inclination_deg"),
    ("m-roll-DEG", "roll_deg"),
    ("m-aircraftPositionX-MTR", "position_x_m"),
    ("m-aircraftPositionY-MTR", "position_y_m"),
    ("m-velocityWorldU-MPS", "velocity_world_u_mps"),
    ("m-velocityWorldV-MPS", "velocity_world_v_mps"),
    ("m-velocityWorldW-MPS", "velocity_world_w_mps"),
    ("m-velocityBodyU-MPS", "velocity_body_u_mps"),
    ("m-velocityBodyV-MPS", "velocity_body_v_mps"),
    ("m-velocityBodyW-MPS", "velocity_body_w_mps"),
    ("m-accelerationWorldAX-MPS2", "accel_world_x_mps2"),
    ("m-accelerationWorldAY-MPS2", "accel_world_y_mps2"),
    ("m-accelerationWorldAZ-MPS2", "accel_world_z_mps2"),
    ("m-accelerationBodyAX-MPS2", "accel_body_x_mps2"),
    ("m-accelerationBodyAY-MPS2", "accel_body_y_mps2"),
    ("m-accelerationBodyAZ-MPS2", "accel_body_z_mps2"),
    ("m-windX-MPS", "wind_x_mps"),
    ("m-windY-MPS", "wind_y_mps"),
    ("m-windZ-MPS", "wind_z_mps"),
    ("m-propRPM", "prop_rpm"),
    ("m-heliMainRotorRPM", "heli_main_rotor_rpm"),
    ("m-batteryVoltage-VOLTS", "battery_voltage_v"),
    ("m-batteryCurrentDraw-AMPS", "battery_current_a"),
    ("m-batteryRemainingCapacity-MAH", "battery_remaining_mah"),
    ("m-fuelRemaining-OZ", "fuel_remaining_oz"),
    ("m-isLocked", "is_locked"),
    ("m-hasLostComponents", "has_lost_components"),
    ("m-anEngineIsRunning", "an_engine_is_running"),
    ("m-isTouchingGround", "is_touching_ground"),
    ("m-flightAxisControllerIsActive", "controller_is_active"),
)

# a leaf element: opening tag, text without markup, matching closing tag
LEAF_RE = re.compile(r'<([A-Za-z_][\w.\-]*)>([^<]*)</\1>')

# these come back as true/false text, read as 1.0 and 0.0
FLAG_KEYS = ("m-isLocked", "m-hasLostComponents", "m-anEngineIsRunning", "m-isTouchingGround",
             "m-flightAxisControllerIsActive")
FLAG_VALUES = {"true": 1.0, "false": 0.0}


class TelemetryRecord(NamedTuple):
    airspeed_mps: float = 0.0
    altitude_asl_m: float = 0.0
    altitude_agl_m: float = 0.0
    groundspeed_mps: float = 0.0
    pitch_rate_dps: float = 0.0
    roll_rate_dps: float = 0.0
    yaw_rate_dps: float = 0.0
    azimuth_deg: float = 0.0
    inclination_deg: float = 0.0
    roll_deg: float = 0.0
    position_x_m: float = 0.0
    position_y_m: float = 0.0
    velocity_world_u_mps: float = 0.0
    velocity_world_v_mps: float = 0.0
    velocity_world_w_mps: float = 0.0
    velocity_body_u_mps: float = 0.0
    velocity_body_v_mps: float = 0.0
    velocity_body_w_mps: float = 0.0
    accel_world_x_mps2: float = 0.0
    accel_world_y_mps2: float = 0.0
    accel_world_z_mps2: float = 0.0
    accel_body_x_mps2: float = 0.0
    accel_body_y_mps2: float = 0.0
    accel_body_z_mps2: float = 0.0
    wind_x_mps: float = 0.0
    wind_y_mps: float = 0.0
    wind_z_mps: float = 0.0
    prop_rpm: float = 0.0
    heli_main_rotor_rpm: float = 0.0
    battery_voltage_v: float = 0.0
    battery_current_a: float = 0.0
    battery_remaining_mah: float = 0.0
    fuel_remaining_oz: float = 0.0
    is_locked: float = 0.0
    has_lost_components: float = 0.0
    an_engine_is_running: float = 0.0
    is_touching_ground: float = 0.0
    controller_is_active: float = 0.0


class MissingKey(ExchangeError):
    def __init__(self, missing, partial):
        self.missing = tuple(missing)  # keys absent, or with unreadable text, in the reply
        self.partial = dict(partial)   # field name -> value for the keys that were found
        super().__init__("missing telemetry key(s): " + ", ".join(self.missing))


def extract_fields(body):
    """
    Scan the reply once and return {element name: float} for every leaf element
    whose text is a number or a true/false flag. Other text is left out.
    """
    fields = {}
    for match in LEAF_RE.finditer(body):
        text = match.group(2).strip()
        flag = FLAG_VALUES.get(text.lower())
        if flag is not None:
            fields[match.group(1)] = flag
            continue
        try:
            fields[match.group(1)] = float(text)
        except ValueError:
            pass  # status strings and other non numeric leaves
    return fields


def parse_reply(body, key_table=KEY_TABLE):
    """
    Returns a TelemetryRecord with every field in key_table filled from body.
    Raises MissingKey naming each absent key; the record is all or nothing.
    """
    fields = extract_fields(body)
    values = {}
    missing = []
    for key, name in key_table:
        if key in fields:
            values[name] = fields[key]
        else:
            missing.append(key)
    if missing:
        for key in missing:
            log.warning("Failed to find key %s", key)
        raise MissingKey(missing, values)
    return TelemetryRecord(**values)


class FlightAxisTelemetry:
    def __init__(self, key_table=KEY_TABLE):
        self.key_table = key_table
        self.record = TelemetryRecord()
        self.valid = False  # True once a complete reply has been parsed

    def update(self, body):
        # record keeps the previous values if this raises
        self.record = parse_reply(body, self.key_table)
        self.valid = True
        return self.record
