# vision_loop/utils/id_generator.py

import random
import time


def generate_id(prefix: str = "pl") -> str:
    """
    Generates a short id such as `pl_1703320000000_123456`.

    Unique enough for a single local library; not a UUID.
    """
    now_ms = int(time.time() * 1000)
    return f"{prefix}_{now_ms}_{random.randrange(1_000_000)}"
