# Random byte generator for exercising the compressors on incompressible data.
import random
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from fgk import END_TEXT

FILE_PREFIX = "random"
DEFAULT_DIRECTORY = "testing_data"
SIZES = [100, 1000, 10000, 100000]
LOW_BYTE = 1
HIGH_BYTE = 254


def random_bytes(size: int, rng: Optional[random.Random] = None, exclude: Iterable[int] = ()) -> bytes:
    rng = rng or random.Random()
    excluded = set(exclude)
    allowed = [b for b in range(LOW_BYTE, HIGH_BYTE + 1) if b not in excluded]
    if not allowed:
        raise ValueError("every byte value is excluded")
    return bytes(rng.choices(allowed, k=size))


def generate(directory: str = DEFAULT_DIRECTORY, sizes: Iterable[int] = SIZES,
             rng: Optional[random.Random] = None, exclude: Iterable[int] = ()) -> List[Path]:
    rng = rng or random.Random()
    exclude = list(exclude)
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for size in sizes:
        path = out_dir / f"{FILE_PREFIX}{size}.txt"
        path.write_bytes(random_bytes(size, rng, exclude))
        print(f"Wrote {size} bytes to {path}")
        paths.append(path)
    return paths


if __name__ == "__main__":
    generate(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_DIRECTORY, exclude=[END_TEXT])
