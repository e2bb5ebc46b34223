# Configuration and constants.
import os

from dotenv import load_dotenv

# DICE_SEED # can be provided in the environment to make the REPL deterministic
# EVAL_TIMEOUT # can be provided in the environment, in seconds

# Apply environment variables from a `.env` file, if present.
load_dotenv()

DICE_LIMIT = 65535
DEFAULT_EVAL_TIMEOUT = 0.05  # in seconds
MAX_EVAL_WORKERS = 2
TEST_SEED = 0x909090
FLOAT_DIGITS = 6  # decimal digits kept when comparing floats
INVISIBLE_SPACE = "\u200b"
MAX_MESSAGE_LENGTH = 1900
MAX_OPERATOR_LIST_LENGTH = 1024


def get_eval_timeout() -> float:
    timeout = os.getenv("EVAL_TIMEOUT")
    if timeout is not None:
        return float(timeout)
    return DEFAULT_EVAL_TIMEOUT


def get_seed() -> int | None:
    seed = os.getenv("DICE_SEED")
    if seed is not None:
        return int(seed, 0)
    return None
