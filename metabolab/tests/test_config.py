from metabolab.config import (
    EvolutionSettings,
    MutationSettings,
    PathwayConfig,
    SimulationSettings,
    TelemetryConfig,
)


def test_simulation_settings_from_env():
    env = {
        "METABOLAB_TIME_STEP": "0.05",
        "METABOLAB_TIME_SCALE": "4",
        "METABOLAB_HISTORY_LENGTH": "120",
        "METABOLAB_SEED": "17",
        "METABOLAB_LETHAL_HEAT": "500",
        "METABOLAB_MUTATION_DUPLICATION_RATE": "0.01",
        "METABOLAB_MUTATION_MAX_ENZYMES": "12",
        "METABOLAB_EVOLUTION_MIN_ENZYMES": "5",
        "METABOLAB_EVOLUTION_BOOST_THRESHOLD": "0.8",
    }

    settings = SimulationSettings.from_env(env)

    assert settings.time_step == 0.05
    assert settings.time_scale == 4.0
    assert settings.history_length == 120
    assert settings.seed == 17
    assert settings.lethal_heat == 500.0
    assert settings.mutation.duplication_rate == 0.01
    assert settings.mutation.max_enzymes == 12
    assert settings.evolution.min_enzymes == 5
    assert settings.evolution.boost_threshold == 0.8


def test_malformed_values_fall_back_to_defaults():
    env = {
        "METABOLAB_TIME_STEP": "fast",
        "METABOLAB_HISTORY_LENGTH": "0",
        "METABOLAB_SEED": "abc",
        "METABOLAB_MUTATION_DRIFT": "lots",
    }

    settings = SimulationSettings.from_env(env)

    assert settings.time_step == SimulationSettings().time_step
    assert settings.history_length == SimulationSettings().history_length
    assert settings.seed is None
    assert settings.mutation.drift == MutationSettings().drift


def test_settings_guards():
    settings = SimulationSettings(time_step=-1.0, history_length=0, min_basal_rate=0.5, max_basal_rate=0.01)
    assert settings.time_step == 0.1
    assert settings.history_length == 1
    assert settings.min_basal_rate < settings.max_basal_rate


def test_pathway_config_from_env_and_mapping():
    env = {
        "METABOLAB_PATHWAY_NUM_MOLECULES": "9",
        "METABOLAB_PATHWAY_TOPOLOGY": "Cyclic",
        "METABOLAB_PATHWAY_INCLUDE_SINK": "false",
    }
    config = PathwayConfig.from_env(env)
    assert config.num_molecules == 9
    assert config.topology == "cyclic"
    assert config.include_sink is False

    mapped = PathwayConfig.from_mapping({"topology": "spiral", "num_enzymes": 0, "unknown": 1})
    assert mapped.topology == "linear"
    assert mapped.num_enzymes == 1


def test_evolution_defaults():
    settings = EvolutionSettings.from_env({"UNRELATED": "1"})
    assert settings.min_enzymes == 3
    assert settings.max_elimination_threshold == 0.5


def test_telemetry_config_from_env():
    env = {
        "OTEL_EXPORTER_OTLP_ENDPOINT": "https://otel.example/v1",
        "OTEL_SERVICE_NAME": "lab",
        "OTEL_SAMPLING_RATIO": "3",
    }
    config = TelemetryConfig.from_env(env)
    assert config.enabled
    assert config.service_name == "lab"
    assert config.sampling_ratio == 1.0

    disabled = TelemetryConfig.from_env({"OTEL_ENABLED": "0"})
    assert not disabled.enabled
    assert disabled.service_name == "metabolab-api"
