# flightaxis_cfg.py
FLIGHTAXIS_SERVER_IP = '127.0.0.1'  # <== set to the PC running RealFlight
FLIGHTAXIS_SERVER_PORT = 18083

CONNECT_TIMEOUT = 1.0      # seconds
FIRST_READ_TIMEOUT = 1.0   # seconds to wait for the start of a reply
NEXT_READ_TIMEOUT = 0.1    # seconds to wait for each remaining fragment
REPLY_BUFFER_SIZE = 10000  # bytes, replies larger than this are rejected

NUM_CHANNELS = 8
SERVO_MIN = 1000  # pulse width mapped to 0.0
SERVO_RANGE = 1000  # pulse width span mapped to 1.0

GYRO_LIMIT_DEG = 2000  # deg/s
ACCEL_LIMIT = 16       # m/s^2, per body axis

REPORT_INTERVAL = 1000  # frames between FPS reports
BASE_RATE_HZ = 250      # harness frame rate at 1x speedup
