"""Configuration helpers for the simulation engine and its service surface."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

import os


_FALSEY = {"0", "false", "no", "off"}


def _parse_float(raw: str | None, default: float, *, minimum: float | None = None) -> float:
    if raw is None:
        return default
    try:
        parsed = float(raw)
    except (TypeError, ValueError):
        return default
    if minimum is not None and parsed < minimum:
        return default
    return parsed


def _parse_int(raw: str | None, default: int, *, minimum: int | None = None) -> int:
    if raw is None:
        return default
    try:
        parsed = int(raw)
    except (TypeError, ValueError):
        return default
    if minimum is not None and parsed < minimum:
        return default
    return parsed


def _parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    return str(raw).strip().lower() not in _FALSEY


def _from_env_fields(cls: type, env: Mapping[str, str], prefix: str) -> Dict[str, Any]:
    """Read every scalar dataclass field of ``cls`` from ``<prefix><FIELD>``."""

    values: Dict[str, Any] = {}
    defaults = cls()
    for item in fields(cls):
        raw = env.get(f"{prefix}{item.name.upper()}")
        if raw is None:
            continue
        current = getattr(defaults, item.name)
        if isinstance(current, bool):
            values[item.name] = _parse_bool(raw, current)
        elif isinstance(current, int):
            values[item.name] = _parse_int(raw, current, minimum=0)
        elif isinstance(current, float):
            values[item.name] = _parse_float(raw, current)
        elif isinstance(current, str):
            values[item.name] = raw.strip().lower()
    return values


@dataclass(slots=True)
class MutationSettings:
    """Rates (per second) and bounds for the mutation generator."""

    point_mutation_rate: float = 0.01
    duplication_rate: float = 0.002
    novel_enzyme_rate: float = 0.001
    regulatory_mutation_rate: float = 0.005
    drift: float = 0.1
    max_enzymes: int = 30
    max_regulators: int = 4
    substitution_chance: float = 0.3
    duplication_concentration_factor: float = 0.1
    duplication_expression_factor: float = 0.2
    novel_enzyme_concentration: float = 0.01
    novel_product_chance: float = 0.2
    weak_basal_rate: float = 0.001

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        prefix: str = "METABOLAB_MUTATION_",
    ) -> "MutationSettings":
        env = env or os.environ
        return cls(**_from_env_fields(cls, env, prefix))


@dataclass(slots=True)
class EvolutionSettings:
    """Thresholds, rates and population bounds for the selection engine."""

    elimination_threshold: float = 0.2
    max_elimination_threshold: float = 0.5
    enzyme_cap: int = 20
    threshold_step: float = 0.02
    min_enzymes: int = 3
    near_zero_concentration: float = 1e-4
    redundancy_margin: float = 0.2
    boost_threshold: float = 0.7
    boost_rate: float = 0.05
    competition_window: float = 0.15
    competition_rate: float = 0.02
    adaptive_rate: float = 0.02
    adaptive_high_fitness: float = 0.65
    adaptive_low_fitness: float = 0.3
    fitness_window: int = 10
    min_history: int = 3

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        prefix: str = "METABOLAB_EVOLUTION_",
    ) -> "EvolutionSettings":
        env = env or os.environ
        return cls(**_from_env_fields(cls, env, prefix))


@dataclass(slots=True)
class SimulationSettings:
    """Orchestrator timing, history and cell-level parameters.

    ``mutation`` and ``evolution`` are nested so a single object can seed a
    whole :class:`~metabolab.simulation.Simulator`.
    """

    time_step: float = 0.1
    time_scale: float = 1.0
    history_length: int = 500
    seed: Optional[int] = None
    heat_dissipation_rate: float = 0.1
    lethal_heat: float = 1.0e4
    competition_penalty: float = 0.7
    max_basal_rate: float = 0.1
    min_basal_rate: float = 1e-6
    mutation: MutationSettings = field(default_factory=MutationSettings)
    evolution: EvolutionSettings = field(default_factory=EvolutionSettings)

    def __post_init__(self) -> None:
        if self.time_step <= 0:
            self.time_step = 0.1
        if self.history_length < 1:
            self.history_length = 1
        if self.min_basal_rate > self.max_basal_rate:
            self.min_basal_rate, self.max_basal_rate = self.max_basal_rate, self.min_basal_rate

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        prefix: str = "METABOLAB_",
    ) -> "SimulationSettings":
        """Create settings from environment variables.

        ``METABOLAB_TIME_STEP``, ``METABOLAB_TIME_SCALE``,
        ``METABOLAB_HISTORY_LENGTH`` and friends map onto the scalar fields;
        ``METABOLAB_SEED`` fixes the random source.  Nested mutation and
        evolution settings read ``METABOLAB_MUTATION_*`` and
        ``METABOLAB_EVOLUTION_*``.  Unparseable values fall back to the
        defaults.
        """

        env = env or os.environ
        defaults = cls()
        seed_raw = env.get(f"{prefix}SEED")
        seed: Optional[int] = None
        if seed_raw is not None and seed_raw.strip():
            try:
                seed = int(seed_raw)
            except ValueError:
                seed = None
        return cls(
            time_step=_parse_float(env.get(f"{prefix}TIME_STEP"), defaults.time_step, minimum=1e-6),
            time_scale=_parse_float(env.get(f"{prefix}TIME_SCALE"), defaults.time_scale, minimum=0.0),
            history_length=_parse_int(env.get(f"{prefix}HISTORY_LENGTH"), defaults.history_length, minimum=1),
            seed=seed,
            heat_dissipation_rate=_parse_float(
                env.get(f"{prefix}HEAT_DISSIPATION_RATE"), defaults.heat_dissipation_rate, minimum=0.0
            ),
            lethal_heat=_parse_float(env.get(f"{prefix}LETHAL_HEAT"), defaults.lethal_heat, minimum=0.0),
            competition_penalty=_parse_float(
                env.get(f"{prefix}COMPETITION_PENALTY"), defaults.competition_penalty, minimum=0.0
            ),
            max_basal_rate=_parse_float(env.get(f"{prefix}MAX_BASAL_RATE"), defaults.max_basal_rate, minimum=0.0),
            min_basal_rate=_parse_float(env.get(f"{prefix}MIN_BASAL_RATE"), defaults.min_basal_rate, minimum=0.0),
            mutation=MutationSettings.from_env(env, prefix=f"{prefix}MUTATION_"),
            evolution=EvolutionSettings.from_env(env, prefix=f"{prefix}EVOLUTION_"),
        )


TOPOLOGIES = ("linear", "branched", "cyclic", "random")


@dataclass(slots=True)
class PathwayConfig:
    """Flat record of pathway generation parameters."""

    num_molecules: int = 6
    num_enzymes: int = 5
    topology: str = "linear"
    molecule_concentration: float = 1.0
    molecule_variance: float = 0.2
    enzyme_concentration: float = 0.05
    enzyme_variance: float = 0.2
    vmax: float = 5.0
    km: float = 0.5
    kinetic_variance: float = 0.3
    delta_g: float = -8.0
    delta_g_variance: float = 4.0
    temperature: float = 310.0
    reaction_efficiency: float = 0.7
    half_life: float = 600.0
    basal_rate: float = 0.002
    regulation_probability: float = 0.3
    max_fold_change: float = 5.0
    include_source: bool = True
    include_sink: bool = True

    def __post_init__(self) -> None:
        if self.topology not in TOPOLOGIES:
            self.topology = "linear"
        self.num_molecules = max(2, int(self.num_molecules))
        self.num_enzymes = max(1, int(self.num_enzymes))

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        prefix: str = "METABOLAB_PATHWAY_",
    ) -> "PathwayConfig":
        env = env or os.environ
        return cls(**_from_env_fields(cls, env, prefix))

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "PathwayConfig":
        known = {item.name for item in fields(cls)}
        return cls(**{key: value for key, value in values.items() if key in known})


@dataclass(slots=True)
class TelemetryConfig:
    """Runtime configuration for OpenTelemetry exporters."""

    enabled: bool = False
    service_name: str = "metabolab-api"
    environment: str = "development"
    exporter_endpoint: Optional[str] = None
    exporter_protocol: str = "http/protobuf"
    sampling_ratio: float = 0.1
    capture_metrics: bool = True
    capture_traces: bool = True

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        prefix: str = "OTEL_",
    ) -> "TelemetryConfig":
        """Construct a configuration object from environment variables."""

        env = env or os.environ
        enabled_raw = env.get(f"{prefix}ENABLED") or env.get("ENABLE_TELEMETRY")
        enabled = _parse_bool(enabled_raw, False)
        endpoint = env.get(f"{prefix}EXPORTER_OTLP_ENDPOINT")
        protocol = env.get(f"{prefix}EXPORTER_OTLP_PROTOCOL")
        service_name = env.get(f"{prefix}SERVICE_NAME") or env.get("SERVICE_NAME") or "metabolab-api"
        environment_name = env.get(f"{prefix}ENVIRONMENT") or env.get("DEPLOYMENT_ENV", "development")

        ratio = _parse_float(env.get(f"{prefix}SAMPLING_RATIO") or env.get("OTEL_TRACES_SAMPLER_ARG"), 0.1)
        ratio = min(1.0, max(0.0, ratio))

        return cls(
            enabled=enabled or bool(endpoint),
            service_name=service_name,
            environment=environment_name,
            exporter_endpoint=endpoint,
            exporter_protocol=protocol or "http/protobuf",
            sampling_ratio=ratio,
            capture_metrics=_parse_bool(env.get(f"{prefix}CAPTURE_METRICS"), True),
            capture_traces=_parse_bool(env.get(f"{prefix}CAPTURE_TRACES"), True),
        )


DEFAULT_SIMULATION_SETTINGS = SimulationSettings.from_env()
DEFAULT_PATHWAY_CONFIG = PathwayConfig.from_env()
DEFAULT_TELEMETRY_CONFIG = TelemetryConfig.from_env()
