# flightaxis_state.py
# converts FlightAxis telemetry to the standard aircraft state

import logging

import numpy as np
from scipy import constants
from scipy.spatial.transform import Rotation

from .flightaxis_cfg import GYRO_LIMIT_DEG, ACCEL_LIMIT
from .flightaxis_mixer import AirframeVariant
from .shared_types import StandardState, initial_state

log = logging.getLogger(__name__)

"""
Earth frame is north, east, down. Body frame is forward, right, down.
FlightAxis azimuth and yaw rate increase counter clockwise seen from above so both are negated.
FlightAxis position X is east and Y is north, altitude AGL is up.
"""

YAW_SIGN = np.array([1.0, 1.0, -1.0])


def world_acceleration(velocity_ef, last_velocity_ef, dt, gravity=constants.g):
    """
    Earth frame specific force from two velocity samples dt seconds apart.
    Without a previous sample, or with dt <= 0, only the gravity term is returned.
    """
    if last_velocity_ef is None or dt <= 0:
        accel_ef = np.zeros(3)
    else:
        accel_ef = (np.asarray(velocity_ef, dtype=float) - last_velocity_ef) / dt
    accel_ef[2] -= gravity
    return accel_ef


class StateTranslator:
    def __init__(self, variant=AirframeVariant.PLANE, speedup=1.0, gravity=constants.g,
                 gyro_limit=GYRO_LIMIT_DEG, accel_limit=ACCEL_LIMIT):
        self.variant = variant
        self.speedup = speedup
        self.gravity = gravity
        self.gyro_limit = gyro_limit
        self.accel_limit = accel_limit
        self.position_offset = None  # raw position of the first sample
        self.last_velocity_ef = None
        self.last_time_s = None
        self.state = initial_state()

    def reset(self):
        # next sample becomes the new (0, 0, 0) and has no previous velocity to difference against
        self.position_offset = None
        self.last_velocity_ef = None
        self.last_time_s = None

    def update(self, record, time_s):
        attitude = (np.radians(record.roll_deg),
                    np.radians(record.inclination_deg),
                    -np.radians(record.azimuth_deg))
        rotation = Rotation.from_euler('ZYX', [attitude[2], attitude[1], attitude[0]])

        rates = np.clip([record.roll_rate_dps, record.pitch_rate_dps, record.yaw_rate_dps],
                        -self.gyro_limit, self.gyro_limit)
        # rates are per simulator second, the harness runs speedup times faster
        gyro = np.radians(rates) * YAW_SIGN * self.speedup

        velocity_ef = np.array([record.velocity_world_u_mps,
                                record.velocity_world_v_mps,
                                record.velocity_world_w_mps])

        position = np.array([record.position_y_m,
                             record.position_x_m,
                             -record.altitude_agl_m])
        if self.position_offset is None:
            self.position_offset = position.copy()
            log.debug("position origin set to %s", self.position_offset)
        position -= self.position_offset

        # the accelerations FlightAxis reports are unreliable, derive them from velocity instead
        if self.last_time_s is None:
            dt = 0.0
        else:
            dt = time_s - self.last_time_s
        accel_ef = world_acceleration(velocity_ef, self.last_velocity_ef, dt, self.gravity)
        accel_body = rotation.inv().apply(accel_ef)
        np.clip(accel_body, -self.accel_limit, self.accel_limit, accel_body)

        self.last_velocity_ef = velocity_ef
        self.last_time_s = time_s
        self.state = StandardState(attitude=tuple(float(a) for a in attitude),
                                   dcm=rotation.as_matrix(),
                                   gyro=gyro,
                                   velocity_ef=velocity_ef,
                                   position=position,
                                   accel_body=accel_body,
                                   airspeed=record.airspeed_mps,
                                   battery_voltage=record.battery_voltage_v,
                                   battery_current=record.battery_current_a,
                                   rpm=getattr(record, self.variant.rpm_field),
                                   on_ground=record.is_touching_ground > 0.5,
                                   time_s=time_s)
        return self.state
