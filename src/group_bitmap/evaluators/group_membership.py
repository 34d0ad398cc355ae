"""Evaluator for combining functions used by the membership bitmap.

Each trial draws a set of distinct groups, observes some of them often
("frequent") and the rest rarely ("rare"), reduces the observations to
per-bucket counts, seeds a :class:`~group_bitmap.bitmap.Bitmap` with
``populate`` and then queries every group with ``get``. The metrics report how
many rare groups leak through as false positives, how many frequent groups are
lost (always zero, since seeding and lookup share one reduction) and how well
the combining function spreads frequent groups over the buckets. Metrics from
all seeds are collapsed into a scalar score where lower is better.
"""

import dataclasses
import math
import random
import statistics
import time
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from group_bitmap.bitmap import Bitmap, HashFunction, bucket_counts
from group_bitmap.bitmap.membership import MAX_CAPACITY

Group = Tuple[int, ...]


class Distribution(str, Enum):
    """How group members are drawn from the value space."""

    UNIFORM = "uniform"  # Independent uniform members
    CLUSTERED = "clustered"  # Members near a shared cluster center
    SEQUENTIAL = "sequential"  # Consecutive IDs, one run per group


class EvaluatorConfig(BaseModel):
    """Workload and scoring knobs for the group membership evaluator."""

    model_config = ConfigDict(validate_assignment=True)

    capacity: int = Field(default=1024, gt=0, le=MAX_CAPACITY)
    group_size: int = Field(default=2, gt=0)
    key_bits: int = Field(default=16, gt=0, le=32)
    frequent_groups: int = Field(default=64, gt=0)
    rare_groups: int = Field(default=512, ge=0)
    frequent_observations: int = Field(default=5, gt=0)
    rare_observations: int = Field(default=1, ge=0)
    support: int = Field(default=3, gt=0)
    hash_function: HashFunction = Field(default=HashFunction.M_HASH)
    seeds: Sequence[int] = Field(default_factory=lambda: (17, 23, 71))

    distribution: Distribution = Field(default=Distribution.UNIFORM)
    num_clusters: int = Field(default=8, gt=0)
    cluster_radius: int = Field(default=256, gt=0)

    false_negative_penalty: float = Field(default=1e6, gt=0.0)
    false_positive_weight: float = Field(default=200.0, ge=0.0)
    collapse_weight: float = Field(default=50.0, ge=0.0)

    @field_validator("support")
    @classmethod
    def _check_support(cls, value: int, info: ValidationInfo) -> int:
        data = info.data or {}
        frequent = data.get("frequent_observations")
        rare = data.get("rare_observations")
        if frequent is not None and value > frequent:
            raise ValueError("support must not exceed frequent_observations")
        if rare is not None and value <= rare:
            raise ValueError("support must exceed rare_observations")
        return value

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "EvaluatorConfig":
        """Load overrides from a YAML mapping; missing keys keep their defaults."""

        with Path(path).open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
        return cls.model_validate(data or {})


@dataclasses.dataclass(slots=True)
class TrialMetrics:
    seed: int
    build_time_s: float
    query_time_s: float
    false_positives: int
    false_negatives: int
    total_frequent_queries: int
    total_rare_queries: int
    distinct_frequent_buckets: int
    bits_set: int
    bucket_count: int

    @property
    def false_positive_rate(self) -> float:
        if self.total_rare_queries == 0:
            return 0.0
        return self.false_positives / self.total_rare_queries

    @property
    def false_negative_rate(self) -> float:
        if self.total_frequent_queries == 0:
            return 0.0
        return self.false_negatives / self.total_frequent_queries

    @property
    def bucket_spread(self) -> float:
        """Fraction of frequent groups that landed in a bucket of their own."""
        if self.total_frequent_queries == 0:
            return 0.0
        return self.distinct_frequent_buckets / self.total_frequent_queries

    @property
    def occupied_fraction(self) -> float:
        return self.bits_set / self.bucket_count


@dataclasses.dataclass(slots=True)
class EvaluationResult:
    score: float
    success: bool
    hash_function: HashFunction
    trials: List[TrialMetrics]
    false_positive_rate: float
    false_negative_rate: float
    bucket_spread: float
    occupied_fraction: float
    mean_build_time_ms: float
    mean_query_time_ms: float
    error: Optional[str] = None


class Evaluator:
    """Runs seeded trials for one combining function and scores the outcome."""

    def __init__(self, config: Optional[EvaluatorConfig] = None) -> None:
        self.config = config or EvaluatorConfig()

    def __call__(self, hash_function: Optional[HashFunction] = None) -> EvaluationResult:
        hash_function = HashFunction(hash_function or self.config.hash_function)
        trials: List[TrialMetrics] = []
        errors: List[str] = []

        for seed in self.config.seeds:
            try:
                trial = self._run_trial(hash_function, seed)
            except Exception as exc:  # noqa: BLE001 - one bad seed must not sink the run
                errors.append(f"seed {seed}: {exc!r}")
                logger.exception("Group membership trial failed for seed {}", seed)
                continue

            trials.append(trial)

        if not trials:
            message = ", ".join(errors) if errors else "no successful trials"
            logger.error("Evaluator produced no successful trials: {}", message)
            return EvaluationResult(
                score=math.inf,
                success=False,
                hash_function=hash_function,
                trials=[],
                false_positive_rate=1.0,
                false_negative_rate=1.0,
                bucket_spread=0.0,
                occupied_fraction=0.0,
                mean_build_time_ms=math.inf,
                mean_query_time_ms=math.inf,
                error=message,
            )

        fp_rate = statistics.fmean(t.false_positive_rate for t in trials)
        fn_rate = statistics.fmean(t.false_negative_rate for t in trials)
        spread = statistics.fmean(t.bucket_spread for t in trials)
        occupied = statistics.fmean(t.occupied_fraction for t in trials)
        mean_build_ms = statistics.fmean(t.build_time_s for t in trials) * 1e3
        mean_query_ms = statistics.fmean(t.query_time_s for t in trials) * 1e3

        score = self._score(fp_rate, fn_rate, spread)

        message = ", ".join(errors) if errors else None
        if message:
            logger.warning("Evaluator encountered partial failures: {}", message)

        logger.debug(
            "Evaluation of {}: fp_rate={:.4f}, fn_rate={:.4f}, spread={:.3f}, occupied={:.3f}, "
            "build={:.2f}ms, query={:.2f}ms, score={:.2f}",
            hash_function.value,
            fp_rate,
            fn_rate,
            spread,
            occupied,
            mean_build_ms,
            mean_query_ms,
            score,
        )
        return EvaluationResult(
            score=score,
            success=not errors,
            hash_function=hash_function,
            trials=trials,
            false_positive_rate=fp_rate,
            false_negative_rate=fn_rate,
            bucket_spread=spread,
            occupied_fraction=occupied,
            mean_build_time_ms=mean_build_ms,
            mean_query_time_ms=mean_query_ms,
            error=message,
        )

    def _run_trial(self, hash_function: HashFunction, seed: int) -> TrialMetrics:
        cfg = self.config
        rng = random.Random(seed)

        groups = self._generate_groups(rng, cfg.frequent_groups + cfg.rare_groups)
        frequent = groups[: cfg.frequent_groups]
        rare = groups[cfg.frequent_groups :]

        observations: List[Group] = []
        for group in frequent:
            observations.extend([group] * cfg.frequent_observations)
        for group in rare:
            observations.extend([group] * cfg.rare_observations)
        rng.shuffle(observations)

        build_start = time.perf_counter()
        counts = bucket_counts(observations, cfg.capacity, hash_function)
        bitmap = Bitmap.from_counts(counts, cfg.support, hash_function)
        build_time = time.perf_counter() - build_start

        query_start = time.perf_counter()
        false_negatives = sum(1 for group in frequent if not bitmap.get(group))
        false_positives = sum(1 for group in rare if bitmap.get(group))
        query_time = time.perf_counter() - query_start

        if false_negatives:
            logger.warning(
                "{} frequent groups missing for {} (seed {})",
                false_negatives,
                hash_function.value,
                seed,
            )

        return TrialMetrics(
            seed=seed,
            build_time_s=build_time,
            query_time_s=query_time,
            false_positives=false_positives,
            false_negatives=false_negatives,
            total_frequent_queries=len(frequent),
            total_rare_queries=len(rare),
            distinct_frequent_buckets=len({bitmap.bucket_of(group) for group in frequent}),
            bits_set=bitmap.count_set(),
            bucket_count=bitmap.bucket_count,
        )

    def _score(self, false_positive_rate: float, false_negative_rate: float, spread: float) -> float:
        cfg = self.config
        score = 0.0

        if false_negative_rate > 0.0:
            score += cfg.false_negative_penalty * false_negative_rate

        score += cfg.false_positive_weight * false_positive_rate

        # A combiner that funnels distinct groups into few buckets is useless even at fp_rate 0
        score += cfg.collapse_weight * (1.0 - spread)

        return score

    def _generate_groups(self, rng: random.Random, count: int) -> List[Group]:
        """Draw ``count`` distinct groups according to the configured distribution."""
        cfg = self.config
        space = 1 << cfg.key_bits

        if cfg.distribution == Distribution.SEQUENTIAL:
            if count * cfg.group_size > space:
                raise ValueError(
                    f"{count} sequential groups of size {cfg.group_size} do not fit in {cfg.key_bits} bits"
                )
            start = rng.randrange(space)
            return [
                tuple((start + index * cfg.group_size + offset) % space for offset in range(cfg.group_size))
                for index in range(count)
            ]

        centers = [rng.randrange(space) for _ in range(cfg.num_clusters)]
        seen = set()
        groups: List[Group] = []
        attempts = 0
        max_attempts = max(1000, count * 100)
        while len(groups) < count:
            attempts += 1
            if attempts > max_attempts:
                raise RuntimeError(f"could not draw {count} distinct groups in {max_attempts} attempts")

            if cfg.distribution == Distribution.CLUSTERED:
                center = rng.choice(centers)
                group = tuple(
                    (center + rng.randint(-cfg.cluster_radius, cfg.cluster_radius)) % space
                    for _ in range(cfg.group_size)
                )
            else:
                group = tuple(rng.randrange(space) for _ in range(cfg.group_size))

            if group in seen:
                continue
            seen.add(group)
            groups.append(group)

        return groups


def compare_hash_functions(config: Optional[EvaluatorConfig] = None) -> Dict[HashFunction, EvaluationResult]:
    """Evaluate every supported combining function on the same workload."""

    evaluator = Evaluator(config)
    return {hash_function: evaluator(hash_function) for hash_function in HashFunction}
