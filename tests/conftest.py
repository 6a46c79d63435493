"""
Pytest configuration and shared fixtures for Chorus tests.

Provides reusable fixtures for:
- Random number generators
- Raw song tables (reference scenario, genre-structured, single genre)
- Cleaned SongData
- Fitted models (session-scoped for speed)
"""

import numpy as np
import pandas as pd
import pytest


# =============================================================================
# BASIC FIXTURES
# =============================================================================


@pytest.fixture
def random_seed() -> int:
    """Consistent random seed for reproducible tests."""
    return 42


@pytest.fixture
def rng(random_seed: int) -> np.random.Generator:
    """NumPy random generator."""
    return np.random.default_rng(random_seed)


# =============================================================================
# SONG TABLE FIXTURES
# =============================================================================


STRUCTURED_GENRES = {
    "jazz": {"intercept": 20.0, "dance": 0.1, "length": 0.0},
    "pop": {"intercept": 60.0, "dance": 0.3, "length": -0.1},
    "rock": {"intercept": 40.0, "dance": -0.1, "length": 0.2},
}


def _structured_config(n_songs: int = 150, random_seed: int = 7):
    from chorus.data.synthetic import SyntheticSongConfig

    return SyntheticSongConfig(
        n_songs=n_songs,
        genres=list(STRUCTURED_GENRES),
        genre_intercepts={g: p["intercept"] for g, p in STRUCTURED_GENRES.items()},
        genre_dance_slopes={g: p["dance"] for g, p in STRUCTURED_GENRES.items()},
        genre_length_slopes={g: p["length"] for g, p in STRUCTURED_GENRES.items()},
        noise_sigma=4.0,
        random_seed=random_seed,
    )


@pytest.fixture
def small_songs_df() -> pd.DataFrame:
    """Hand-written table with two genres and one very long song."""
    return pd.DataFrame(
        {
            "Popularity": [70.0, 55.0, 80.0, 40.0, 65.0, 30.0, 90.0, 50.0],
            "Danceability": [60.0, 45.0, 75.0, 30.0, 55.0, 20.0, 85.0, 40.0],
            "Length": [200.0, 180.0, 240.0, 150.0, 210.0, 170.0, 230.0, 900.0],
            "Genre": ["pop", "rock", "pop", "rock", "pop", "rock", "pop", "rock"],
        }
    )


@pytest.fixture
def reference_songs_df(random_seed: int) -> pd.DataFrame:
    """Reference scenario: 100 songs, 2 genres, no real signal."""
    from chorus.data.synthetic import generate_synthetic_songs

    return generate_synthetic_songs(random_seed=random_seed)


@pytest.fixture
def structured_songs_df() -> pd.DataFrame:
    """Three genres with clearly different intercepts and slopes."""
    from chorus.data.synthetic import generate_synthetic_songs

    return generate_synthetic_songs(_structured_config())


@pytest.fixture
def single_genre_df(random_seed: int) -> pd.DataFrame:
    """Every song in the same genre."""
    from chorus.data.synthetic import SyntheticSongConfig, generate_synthetic_songs

    config = SyntheticSongConfig(n_songs=60, genres=["pop"], random_seed=random_seed)
    return generate_synthetic_songs(config)


@pytest.fixture
def reference_song_data(reference_songs_df: pd.DataFrame):
    from chorus.data.loading import clean_songs

    return clean_songs(reference_songs_df)


@pytest.fixture
def structured_song_data(structured_songs_df: pd.DataFrame):
    from chorus.data.loading import clean_songs

    return clean_songs(structured_songs_df)


# =============================================================================
# SAMPLER FIXTURES
# =============================================================================


def _fast_sampler():
    from chorus.config import SamplerConfig

    return SamplerConfig(
        chains=2,
        n_adapt=150,
        n_burnin=150,
        draws=200,
        cores=1,
        random_seed=42,
    )


@pytest.fixture
def fast_sampler():
    """Short chains for tests that sample."""
    return _fast_sampler()


@pytest.fixture
def stub_sampler():
    """Stand-in for ``sample_model`` that draws noise instead of running NUTS.

    Every free and deterministic variable of the model gets 2 x 20 draws of
    its own shape and dims, plus a finite pointwise log-likelihood, so the
    post-sampling checks and DIC run on any of the three models.
    """
    import arviz as az

    from chorus.models.common import OBSERVED_NAME

    def sample(model, config):
        rng = np.random.default_rng(1)
        shape = (2, 20)
        names = [rv.name for rv in model.free_RVs + model.deterministics]

        posterior = {}
        for name in names:
            size = shape + tuple(int(n) for n in model[name].shape.eval())
            if name.endswith("sigma"):
                posterior[name] = rng.lognormal(3, 0.05, size)
            elif name.startswith("intercept"):
                posterior[name] = rng.normal(50, 1, size)
            else:
                posterior[name] = rng.normal(0, 0.05, size)

        n_obs = len(model.coords["obs_id"])
        dims = {
            name: list(model.named_vars_to_dims[name])
            for name in names
            if name in model.named_vars_to_dims
        }
        dims[OBSERVED_NAME] = ["obs_id"]
        return az.from_dict(
            posterior=posterior,
            log_likelihood={OBSERVED_NAME: rng.normal(-4.5, 0.1, shape + (n_obs,))},
            coords={k: list(v) for k, v in model.coords.items()},
            dims=dims,
        )

    return sample


# =============================================================================
# MODEL FIXTURES (Session-scoped for speed)
# =============================================================================


@pytest.fixture(scope="session")
def structured_data_session():
    """Cleaned genre-structured data shared by the fitted-model fixtures."""
    from chorus.data.loading import clean_songs
    from chorus.data.synthetic import generate_synthetic_songs

    return clean_songs(generate_synthetic_songs(_structured_config()))


@pytest.fixture(scope="session")
def fitted_pooled(structured_data_session):
    """
    Pre-fitted pooled model.

    Session-scoped to avoid refitting for every test.
    Uses minimal sampling for speed.
    """
    pytest.importorskip("pymc")

    from chorus.models import fit_model, get_model_spec

    return fit_model(
        get_model_spec("pooled"), structured_data_session, config=_fast_sampler()
    )


@pytest.fixture(scope="session")
def fitted_unpooled(structured_data_session):
    """Pre-fitted unpooled model."""
    pytest.importorskip("pymc")

    from chorus.models import fit_model, get_model_spec

    return fit_model(
        get_model_spec("unpooled"), structured_data_session, config=_fast_sampler()
    )


@pytest.fixture(scope="session")
def fitted_hierarchical(structured_data_session):
    """Pre-fitted hierarchical model."""
    pytest.importorskip("pymc")

    from chorus.models import fit_model, get_model_spec

    return fit_model(
        get_model_spec("hierarchical"),
        structured_data_session,
        config=_fast_sampler(),
    )


@pytest.fixture(scope="session")
def all_fits(fitted_pooled, fitted_unpooled, fitted_hierarchical):
    """Dictionary of all fitted models."""
    return {
        "pooled": fitted_pooled,
        "unpooled": fitted_unpooled,
        "hierarchical": fitted_hierarchical,
    }


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests requiring PyMC sampling"
    )
    config.addinivalue_line("markers", "pymc: marks tests requiring PyMC")


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on their requirements."""
    for item in items:
        fixtures = getattr(item, "fixturenames", ())

        if "pymc" in item.nodeid or any(f.startswith("fitted_") for f in fixtures):
            item.add_marker(pytest.mark.pymc)

        if "integration" in item.nodeid or "all_fits" in fixtures:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)


# =============================================================================
# HYPOTHESIS PROFILES
# =============================================================================

from hypothesis import settings, Verbosity

settings.register_profile("ci", max_examples=50, deadline=None)
settings.register_profile("dev", max_examples=10, deadline=None)
settings.register_profile(
    "debug", max_examples=5, verbosity=Verbosity.verbose, deadline=None
)
