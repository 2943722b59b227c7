# flightaxis_timing.py
# simulated time keeping and periodic frame rate reports

import time
import logging

from .flightaxis_cfg import REPORT_INTERVAL, BASE_RATE_HZ

log = logging.getLogger(__name__)


class FrameTimer:
    def __init__(self, speedup=1.0, report_interval=REPORT_INTERVAL, clock=time.time):
        self.speedup = speedup
        self.report_interval = report_interval
        self.clock = clock
        self.last_time = clock()
        self.time_now = 0.0         # simulated seconds since start
        self.frame_counter = 0
        self.last_report_time = None  # simulated time of the previous report

    @property
    def rate_hz(self):
        # frame rate the harness should aim for
        return BASE_RATE_HZ / self.speedup

    def advance(self):
        """ moves simulated time on by the scaled wall clock time since the last call, returns dt """
        now = self.clock()
        dt = (now - self.last_time) * self.speedup
        self.last_time = now
        self.time_now += dt
        return dt

    def report(self, position):
        """
        Counts a frame. Every report_interval frames logs the average frame rate,
        or the initial position on the first report. Returns the frame rate or None.
        """
        fps = None
        if self.frame_counter % self.report_interval == 0:
            if self.last_report_time is None:
                log.info("Initial position %f %f %f", position[0], position[1], position[2])
            else:
                elapsed = self.time_now - self.last_report_time
                if elapsed > 0:
                    fps = self.report_interval / elapsed
                    log.info("%.2f FPS", fps)
                else:
                    log.warning("no simulated time elapsed over the last %d frames", self.report_interval)
            self.last_report_time = self.time_now
        self.frame_counter += 1
        return fps
