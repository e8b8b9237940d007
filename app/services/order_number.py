"""Receipt order numbers derived from wall-clock time plus a random suffix."""
import random
from datetime import datetime

STAFF_PREFIX = 'ORD'
VISITOR_PREFIX = 'VIS'


def generate_order_number(prefix=STAFF_PREFIX, now=None):
    """
    Build `PREFIX-YYYYMMDD-HHMM-NNNN`.

    No central counter is consulted, so two terminals can collide within the
    same minute with probability 1/10000; the unique index on
    orders.order_number turns such a collision into an aborted commit.
    """
    now = now or datetime.now()
    suffix = random.randint(0, 9999)
    return f"{prefix}-{now:%Y%m%d}-{now:%H%M}-{suffix:04d}"
