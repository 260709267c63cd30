# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/services/resource_limits.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Resource ceilings per language and for heavy (NGS) workloads.

Caller overrides can only tighten a ceiling: each known field is clamped to
``min(override, default)`` and anything else is dropped.

Examples:
    >>> resolver = ResourceLimitResolver()
    >>> resolver.resolve("bash", False)
    {'timeoutSeconds': 60, 'memoryLimitMB': 128, 'maxLoopIterations': 10000}
    >>> resolver.resolve("python", True)
    {'memoryMB': 2048, 'cpuMillicores': 1000, 'diskMB': 1024, 'timeoutSeconds': 600}
    >>> resolver.resolve("python", False, {"timeoutSeconds": 10, "memoryLimitMB": 99999})
    {'timeoutSeconds': 10, 'memoryLimitMB': 512, 'maxLoopIterations': 1000000}
"""

# Standard
from typing import Any, Dict, Mapping, Optional, Sequence

# First-Party
from scriptgateway.models import ScriptLanguage
from scriptgateway.schemas import HeavyWorkloadLimits, NgsConfig, ResourceLimits
from scriptgateway.services.logging_service import LoggingService

logger = LoggingService().get_logger(__name__)

LANGUAGE_RESOURCE_LIMITS: Dict[ScriptLanguage, ResourceLimits] = {
    ScriptLanguage.PYTHON: ResourceLimits(timeout_seconds=300, memory_limit_mb=512, max_loop_iterations=1_000_000),
    ScriptLanguage.R: ResourceLimits(timeout_seconds=600, memory_limit_mb=1024, max_loop_iterations=500_000),
    ScriptLanguage.JULIA: ResourceLimits(timeout_seconds=300, memory_limit_mb=1024, max_loop_iterations=1_000_000),
    ScriptLanguage.JAVASCRIPT: ResourceLimits(timeout_seconds=120, memory_limit_mb=256, max_loop_iterations=1_000_000),
    ScriptLanguage.BASH: ResourceLimits(timeout_seconds=60, memory_limit_mb=128, max_loop_iterations=10_000),
}

NGS_RESOURCE_LIMITS = HeavyWorkloadLimits(memory_mb=2048, cpu_millicores=1000, disk_mb=1024, timeout_seconds=600)

NGS_KEYWORDS: Sequence[str] = (
    "pysam",
    "Bio.SeqIO",
    "fastq",
    "fasta",
    "bam",
    "sam",
    "vcf",
    "sequencing",
    "alignment",
    "variant",
    "genome",
    "bowtie",
    "bwa",
    "read_depth",
    "coverage",
    "trimming",
    "adapter",
)

NGS_METADATA_TAG = "ngs"


class ResourceLimitResolver:
    """Maps a script to the resource ceiling the backend must enforce."""

    def __init__(
        self,
        language_limits: Optional[Mapping[ScriptLanguage, ResourceLimits]] = None,
        heavy_limits: Optional[HeavyWorkloadLimits] = None,
        heavy_keywords: Optional[Sequence[str]] = None,
    ):
        self._language_limits = dict(language_limits or LANGUAGE_RESOURCE_LIMITS)
        self._heavy_limits = heavy_limits or NGS_RESOURCE_LIMITS
        self._heavy_keywords = tuple(keyword.lower() for keyword in (heavy_keywords or NGS_KEYWORDS))

    def is_heavy_workload(self, code: Optional[str], metadata: Optional[Mapping[str, Any]] = None) -> bool:
        """Classify a script as a heavy (NGS) workload.

        A metadata tag (``type`` or ``category`` equal to ``ngs``) is
        authoritative. Otherwise any keyword found in the source,
        case-insensitively, classifies the whole script as heavy.

        Args:
            code: Script source, may be empty.
            metadata: Script metadata from the catalog.

        Returns:
            bool: True for heavy workloads.

        Examples:
            >>> resolver = ResourceLimitResolver()
            >>> resolver.is_heavy_workload("import PYSAM")
            True
            >>> resolver.is_heavy_workload("print(1)", {"category": "ngs"})
            True
            >>> resolver.is_heavy_workload("print(1)")
            False
        """
        if isinstance(metadata, Mapping):
            if metadata.get("type") == NGS_METADATA_TAG or metadata.get("category") == NGS_METADATA_TAG:
                return True
        lowered = (code or "").lower()
        return any(keyword in lowered for keyword in self._heavy_keywords)

    def default_limits(self, language: str, is_heavy_workload: bool = False) -> Dict[str, Any]:
        """Return the unmerged ceiling for a language or the heavy profile.

        Args:
            language: Script language; unknown languages use the python profile.
            is_heavy_workload: Use the heavy profile instead of the language one.

        Returns:
            Dict[str, Any]: camelCase limit fields.
        """
        if is_heavy_workload:
            return self._heavy_limits.to_wire()
        try:
            profile = self._language_limits[ScriptLanguage(str(language).lower())]
        except (ValueError, KeyError):
            logger.warning(f"No resource profile for language '{language}', using python defaults")
            profile = self._language_limits[ScriptLanguage.PYTHON]
        return profile.to_wire()

    def resolve(self, language: str, is_heavy_workload: bool = False, override: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Resolve the final ceiling, narrowing it with a caller override.

        Args:
            language: Script language.
            is_heavy_workload: Whether the heavy profile applies.
            override: Caller-supplied camelCase limits.

        Returns:
            Dict[str, Any]: Final camelCase limits for the ``execute_script`` frame.
        """
        limits = self.default_limits(language, is_heavy_workload)
        if not override:
            return limits

        for key, value in override.items():
            if key not in limits:
                logger.warning(f"Ignoring unknown execution limit '{key}'")
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                logger.warning(f"Ignoring invalid execution limit {key}={value!r}")
                continue
            if value > limits[key]:
                logger.warning(f"Execution limit {key}={value} exceeds the ceiling {limits[key]}; clamping")
                continue
            limits[key] = value
        return limits

    @staticmethod
    def ngs_config(parameters: Mapping[str, Any]) -> NgsConfig:
        """Build the sequencing configuration from raw run parameters.

        Args:
            parameters: Request parameters (``threads``, ``reference``, ``quality``).

        Returns:
            NgsConfig: Configuration with defaults for missing values.

        Values that do not convert fall back to the default.

        Examples:
            >>> ResourceLimitResolver.ngs_config({"threads": 8}).to_wire()
            {'threadCount': 8, 'referenceGenome': 'hg38', 'qualityThreshold': 20}
            >>> ResourceLimitResolver.ngs_config({"threads": "many", "reference": 38, "quality": 0.5}).to_wire()
            {'threadCount': 4, 'referenceGenome': '38', 'qualityThreshold': 20}
        """
        defaults = NgsConfig()
        return NgsConfig(
            thread_count=_positive_int(parameters.get("threads"), defaults.thread_count, "threads"),
            reference_genome=_text(parameters.get("reference"), defaults.reference_genome, "reference"),
            quality_threshold=_positive_int(parameters.get("quality"), defaults.quality_threshold, "quality"),
        )


def _positive_int(value: Any, default: int, name: str) -> int:
    if value is None or value == "":
        return default
    if not isinstance(value, bool):
        try:
            if isinstance(value, float):
                converted = int(value) if value.is_integer() else None
            else:
                converted = int(value)
        except (TypeError, ValueError, OverflowError):
            converted = None
        if converted is not None and converted > 0:
            return converted
    logger.warning(f"Ignoring invalid sequencing parameter {name}={value!r}")
    return default


def _text(value: Any, default: str, name: str) -> str:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    logger.warning(f"Ignoring invalid sequencing parameter {name}={value!r}")
    return default
