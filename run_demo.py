"""Compare the bitmap's combining functions on a synthetic group workload.

Run ``python run_demo.py`` for the default workload, or edit
``configs/group_membership.yaml`` and call :func:`demo_from_yaml`.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from group_bitmap.bitmap import Bitmap, HashFunction, bucket_counts
from group_bitmap.evaluators import EvaluatorConfig, compare_hash_functions

_CONFIG_PATH = Path(__file__).parent / "configs" / "group_membership.yaml"


def demo_smoke_test() -> None:
    observed = [(3, 5), (3, 5), (3, 5), (8, 1), (12, 7), (12, 7), (12, 7)]
    counts = bucket_counts(observed, 64, HashFunction.M_HASH)
    bitmap = Bitmap.from_counts(counts, support=3, hash_function=HashFunction.M_HASH)

    logger.info("{}", bitmap)
    for group in [(3, 5), (12, 7), (8, 1), (5, 3)]:
        logger.info("group {} present={}", group, bitmap.get(group))


def demo_compare(config: EvaluatorConfig | None = None) -> None:
    results = compare_hash_functions(config)

    logger.info("{}", "=" * 60)
    logger.info("COMBINING FUNCTION COMPARISON")
    logger.info("{}", "=" * 60)
    for hash_function, result in results.items():
        logger.info(
            "{:<8} score={:>8.2f} fp_rate={:.4f} fn_rate={:.4f} spread={:.3f} occupied={:.3f}",
            hash_function.value,
            result.score,
            result.false_positive_rate,
            result.false_negative_rate,
            result.bucket_spread,
            result.occupied_fraction,
        )
        if result.error:
            logger.warning("{} errors: {}", hash_function.value, result.error)


def demo_from_yaml(config_file: Path = _CONFIG_PATH) -> None:
    demo_compare(EvaluatorConfig.from_yaml(config_file))


if __name__ == "__main__":
    demo_smoke_test()
    demo_compare()
