#!/usr/bin/env python
"""
Benchmark filter and pipeline performance.

Usage:
    python scripts/benchmark.py [WIDTH HEIGHT]
"""

import io
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from PIL import Image

from pixelpipe import Config, get_asset_cache, get_registry, run_pipeline

RUNS = 5
THREADS = 8


def _sample(width: int, height: int) -> bytes:
    image = Image.radial_gradient("L").resize((width, height)).convert("RGBA")
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def main() -> None:
    """Run performance benchmarks."""
    width, height = (int(sys.argv[1]), int(sys.argv[2])) if len(sys.argv) == 3 else (512, 384)
    print("Performance Benchmark")
    print("=" * 50)
    print(f"Input: {width}x{height}")
    print()

    config = Config.from_env()
    config.stage_timeout = None
    config.validate()
    data = _sample(width, height)

    start = time.time()
    get_asset_cache(config).ensure_loaded(config.asset_load_timeout)
    print(f"✓ Template load: {time.time() - start:.3f}s")
    print()

    # Single filters
    print("Benchmarking single filters...")
    for name in get_registry().names():
        start = time.time()
        for _ in range(RUNS):
            result = run_pipeline([name], data, config=config)
        elapsed = (time.time() - start) / RUNS
        print(f"  {name:<10} {elapsed * 1000:8.1f}ms  {len(result.buffer) / 1000:8.1f} KB")
    print()

    # Whole pipeline from many threads
    names = get_registry().names()
    print(f"Benchmarking {THREADS} concurrent runs of the full pipeline...")
    start = time.time()
    with ThreadPoolExecutor(max_workers=THREADS) as executor:
        results = list(
            executor.map(lambda _: run_pipeline(names, data, config=config), range(THREADS))
        )
    elapsed = time.time() - start
    print(f"✓ Wall time: {elapsed:.2f}s")
    print(f"  Runs per second: {len(results) / elapsed:.1f}")
    print(f"  Outputs identical: {len({r.buffer for r in results}) == 1}")

    print()
    print("=" * 50)
    print("Benchmark complete")


if __name__ == "__main__":
    main()
