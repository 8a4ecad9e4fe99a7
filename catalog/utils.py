import random
import string
from datetime import datetime, timezone

ALNUM = string.ascii_uppercase + string.digits


def generate_product_id(prefix="PRD"):
    ts = datetime.now(timezone.utc).strftime("%y%m%d%H%M%S")
    rand = "".join(random.choices(ALNUM, k=6))
    return f"{prefix}{ts}{rand}"
