# flightaxis_mixer.py
# maps servo outputs to the 0..1 channel values FlightAxis expects

import logging
from enum import Enum

import numpy as np

from .flightaxis_cfg import NUM_CHANNELS, SERVO_MIN, SERVO_RANGE

log = logging.getLogger(__name__)


def normalize(servos):
    """
    Converts raw servo pulse widths (nominally 1000..2000) to 0..1.
    Values outside the nominal range are clipped.
    """
    if len(servos) != NUM_CHANNELS:
        raise ValueError(f"expected {NUM_CHANNELS} servo values, got {len(servos)}")
    channels = (np.asarray(servos, dtype=float) - SERVO_MIN) / SERVO_RANGE
    np.clip(channels, 0, 1, channels)
    return channels


class SwapHalves:
    """Exchanges channels 0-3 with 4-7, for quadplanes with the motors on the last four outputs."""

    def apply(self, channels):
        half = len(channels) // 2
        return np.concatenate((channels[half:], channels[:half]))


class SwashplateDemix:
    """
    Converts three swashplate servos on channels 0..2 to the roll and pitch
    inputs FlightAxis expects for helicopters. Collective and yaw pass through.
    """

    def apply(self, channels):
        swash1, swash2, swash3 = channels[0], channels[1], channels[2]
        roll = swash1 - swash2
        pitch = -((swash1 + swash2) / 2.0 - swash3)

        out = channels.copy()
        out[0] = np.clip(roll + 0.5, 0, 1)
        out[1] = np.clip(pitch + 0.5, 0, 1)
        return out


class AirframeVariant(Enum):
    PLANE = 'plane'
    REV4 = 'rev4'
    HELI = 'heli'
    HELI_REV4 = 'heli-rev4'

    @classmethod
    def from_frame(cls, frame):
        # frame is the free text model name given on the command line, e.g. "heli" or "quadplane-rev4"
        frame = frame or ''
        heli = 'heli' in frame
        rev4 = 'rev4' in frame
        if heli and rev4:
            return cls.HELI_REV4
        if heli:
            return cls.HELI
        if rev4:
            return cls.REV4
        return cls.PLANE

    @property
    def is_heli(self):
        return self in (AirframeVariant.HELI, AirframeVariant.HELI_REV4)

    @property
    def transforms(self):
        return VARIANT_TRANSFORMS[self]

    @property
    def rpm_field(self):
        # TelemetryRecord field reported as the vehicle rpm
        return 'heli_main_rotor_rpm' if self.is_heli else 'prop_rpm'


# transforms are applied in order after normalizing
VARIANT_TRANSFORMS = {
    AirframeVariant.PLANE: (),
    AirframeVariant.REV4: (SwapHalves(),),
    AirframeVariant.HELI: (SwashplateDemix(),),
    AirframeVariant.HELI_REV4: (SwapHalves(), SwashplateDemix()),
}


class ActuatorMixer:
    def __init__(self, variant=AirframeVariant.PLANE):
        if not isinstance(variant, AirframeVariant):
            raise ValueError(f"unknown airframe variant {variant!r}")
        self.variant = variant
        log.debug("actuator mixer using %s transforms", variant.value)

    def mix(self, servos):
        channels = normalize(servos)
        for transform in self.variant.transforms:
            channels = transform.apply(channels)
        return channels
