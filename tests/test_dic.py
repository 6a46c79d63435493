"""
Tests for DIC and model comparison on hand-built traces.

Every trace here is built with ``az.from_dict`` so the expected values
can be worked out by hand; no sampling is involved.
"""

import arviz as az
import numpy as np
import pytest
from scipy import stats

from chorus.data.loading import clean_songs
from chorus.evaluation.dic import (
    compare_models,
    compute_dic,
    deviance_at_posterior_mean,
    pointwise_log_likelihood,
)
from chorus.exceptions import ModelFitError
from chorus.models.common import OBSERVED_NAME

N_CHAINS, N_DRAWS = 2, 6


@pytest.fixture
def song_data(small_songs_df):
    return clean_songs(small_songs_df)


def _constant_posterior(intercept=50.0, slope_dance=0.0, slope_length=0.0, sigma=10.0):
    shape = (N_CHAINS, N_DRAWS)
    return {
        "intercept": np.full(shape, intercept),
        "slope_dance": np.full(shape, slope_dance),
        "slope_length": np.full(shape, slope_length),
        "sigma": np.full(shape, sigma),
    }


def _log_lik_with_totals(totals, n_obs):
    """Pointwise log-likelihood whose per-draw sums equal ``totals``."""
    ll = np.zeros((N_CHAINS, N_DRAWS, n_obs))
    ll[:, :, 0] = np.asarray(totals).reshape(N_CHAINS, N_DRAWS)
    return ll


def _trace(posterior, log_lik=None, dims=None, coords=None):
    groups = {"posterior": posterior}
    if log_lik is not None:
        groups["log_likelihood"] = {OBSERVED_NAME: log_lik}
    return az.from_dict(**groups, dims=dims, coords=coords)


# Alternating totals: mean -11, population variance 1
TOTALS = [-10.0, -12.0] * (N_CHAINS * N_DRAWS // 2)


# =============================================================================
# DEVIANCE AT POSTERIOR MEAN
# =============================================================================


class TestDevianceAtMean:
    def test_scalar_parameters(self, song_data):
        trace = _trace(_constant_posterior())
        expected = -2 * stats.norm.logpdf(song_data.popularity, 50.0, 10.0).sum()

        assert deviance_at_posterior_mean(trace, song_data) == pytest.approx(expected)

    def test_genre_parameters_are_indexed(self, song_data):
        """Genre-dimension parameters are picked per song; scalars broadcast."""
        posterior = _constant_posterior()
        posterior["intercept"] = np.stack(
            [np.full((N_CHAINS, N_DRAWS), 40.0), np.full((N_CHAINS, N_DRAWS), 60.0)],
            axis=-1,
        )
        trace = _trace(
            posterior,
            dims={"intercept": ["genre"]},
            coords={"genre": song_data.genres},
        )

        mu = np.where(song_data.genre_index0 == 0, 40.0, 60.0)
        expected = -2 * stats.norm.logpdf(song_data.popularity, mu, 10.0).sum()

        assert deviance_at_posterior_mean(trace, song_data) == pytest.approx(expected)

    def test_uses_posterior_mean_not_draws(self, song_data):
        posterior = _constant_posterior()
        posterior["intercept"] = np.tile([45.0, 55.0], (N_CHAINS, N_DRAWS // 2))
        trace = _trace(posterior)

        expected = -2 * stats.norm.logpdf(song_data.popularity, 50.0, 10.0).sum()
        assert deviance_at_posterior_mean(trace, song_data) == pytest.approx(expected)


# =============================================================================
# DIC
# =============================================================================


class TestComputeDIC:
    def test_known_values(self, song_data):
        """p_DIC = 2 Var(total log-lik) = 2, so DIC = D(theta_bar) + 4."""
        trace = _trace(
            _constant_posterior(), _log_lik_with_totals(TOTALS, song_data.n_obs)
        )
        d_hat = -2 * stats.norm.logpdf(song_data.popularity, 50.0, 10.0).sum()

        result = compute_dic(trace, song_data)

        assert result.p_dic == pytest.approx(2.0)
        assert result.deviance_at_mean == pytest.approx(d_hat)
        assert result.dic == pytest.approx(d_hat + 4.0)
        assert result.mean_deviance == pytest.approx(22.0)
        assert result.p_d == pytest.approx(22.0 - d_hat)

    def test_constant_log_likelihood_has_no_penalty(self, song_data):
        trace = _trace(
            _constant_posterior(),
            _log_lik_with_totals([-5.0] * (N_CHAINS * N_DRAWS), song_data.n_obs),
        )
        result = compute_dic(trace, song_data)
        assert result.p_dic == 0.0
        assert result.dic == pytest.approx(result.deviance_at_mean)

    def test_missing_log_likelihood(self, song_data):
        trace = _trace(_constant_posterior())

        with pytest.raises(ModelFitError) as exc_info:
            compute_dic(trace, song_data, model_name="pooled")
        assert exc_info.value.stage == "log_likelihood"
        assert exc_info.value.model_name == "pooled"

    def test_non_finite_dic(self, song_data):
        ll = _log_lik_with_totals(TOTALS, song_data.n_obs)
        ll[0, 0, 1] = -np.inf
        trace = _trace(_constant_posterior(), ll)

        with pytest.raises(ModelFitError) as exc_info:
            compute_dic(trace, song_data)
        assert exc_info.value.stage == "dic"

    def test_pointwise_log_likelihood_shape(self, song_data):
        trace = _trace(
            _constant_posterior(), _log_lik_with_totals(TOTALS, song_data.n_obs)
        )
        ll = pointwise_log_likelihood(trace)
        assert ll.shape == (N_CHAINS, N_DRAWS, song_data.n_obs)

    def test_pointwise_log_likelihood_unknown_variable(self, song_data):
        trace = _trace(
            _constant_posterior(), _log_lik_with_totals(TOTALS, song_data.n_obs)
        )
        with pytest.raises(ValueError, match="y_obs"):
            pointwise_log_likelihood(trace, var_name="y_obs")


# =============================================================================
# COMPARISON
# =============================================================================


class TestCompareModels:
    @pytest.fixture
    def traces(self, song_data):
        ll = _log_lik_with_totals(TOTALS, song_data.n_obs)
        return {
            "good": _trace(_constant_posterior(intercept=60.0, sigma=15.0), ll),
            "bad": _trace(_constant_posterior(intercept=0.0, sigma=5.0), ll),
            "middle": _trace(_constant_posterior(intercept=40.0, sigma=20.0), ll),
        }

    def test_sorted_best_first(self, traces, song_data):
        table = compare_models(traces, song_data)

        assert list(table.columns) == [
            "Model",
            "DIC",
            "deviance_at_mean",
            "mean_deviance",
            "p_DIC",
            "p_D",
            "rank",
        ]
        assert table["DIC"].is_monotonic_increasing
        assert table["rank"].tolist() == [1, 2, 3]
        assert table["Model"].iloc[-1] == "bad"

    def test_order_independent(self, traces, song_data):
        """Reordering the inputs changes neither scores nor ranking."""
        forward = compare_models(traces, song_data)
        backward = compare_models(dict(reversed(list(traces.items()))), song_data)

        assert forward["Model"].tolist() == backward["Model"].tolist()
        np.testing.assert_array_almost_equal(
            forward["DIC"].values, backward["DIC"].values
        )

    def test_ties_keep_input_order(self, song_data):
        ll = _log_lik_with_totals(TOTALS, song_data.n_obs)
        same = _constant_posterior()
        traces = {
            "second": _trace(same, ll),
            "first": _trace(same, ll),
        }

        table = compare_models(traces, song_data)

        assert table["DIC"].iloc[0] == table["DIC"].iloc[1]
        assert table["Model"].tolist() == ["second", "first"]

    def test_empty_input_rejected(self, song_data):
        with pytest.raises(ValueError, match="at least one"):
            compare_models({}, song_data)

    def test_unknown_criterion_rejected(self, traces, song_data):
        with pytest.raises(ValueError, match="Unknown criterion"):
            compare_models(traces, song_data, criterion="bic")
