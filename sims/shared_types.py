# shared_types.py
# data elements shared across modules

from typing import NamedTuple

import numpy as np


class AircraftInfo(NamedTuple):
    status: str  # "ok", "warning", "nogo"
    name: str    # airframe variant or "Aircraft"


class ControllerSession(NamedTuple):
    started: bool = False  # True once FlightAxis has handed control to us
    handshakes: int = 0    # number of times control has been requested


class StandardState(NamedTuple):
    attitude: tuple         # roll, pitch, yaw in radians
    dcm: np.ndarray         # 3x3 body to earth rotation
    gyro: np.ndarray        # body rates, rad/s
    velocity_ef: np.ndarray  # earth frame (north, east, down), m/s
    position: np.ndarray    # earth frame, m, relative to the first sample
    accel_body: np.ndarray  # body frame specific force, m/s^2
    airspeed: float
    battery_voltage: float
    battery_current: float
    rpm: float
    on_ground: bool
    time_s: float           # simulated time of this sample


def initial_state():
    return StandardState(attitude=(0.0, 0.0, 0.0),
                         dcm=np.eye(3),
                         gyro=np.zeros(3),
                         velocity_ef=np.zeros(3),
                         position=np.zeros(3),
                         accel_body=np.zeros(3),
                         airspeed=0.0,
                         battery_voltage=0.0,
                         battery_current=0.0,
                         rpm=0.0,
                         on_ground=False,
                         time_s=0.0)
