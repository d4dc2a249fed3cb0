"""End-to-end analysis on the 4-team fixture season."""

import pytest

from league_ranking.model.adapters import EloAdapter, HeuristicAdapter
from league_ranking.model.backtest import BacktestConfig
from league_ranking.model.inference import InferenceConfig
from league_ranking.model.rankings import RankingConfig
from league_ranking.model.ratings import ELO_VARIANTS
from league_ranking.pipeline import run_analysis


@pytest.mark.slow
def test_run_analysis(dataset, capsys):
    report = run_analysis(
        dataset,
        adapters=[HeuristicAdapter(), *(EloAdapter(c) for c in ELO_VARIANTS)],
        inference_config=InferenceConfig(
            mcmc_draws=300, mcmc_tune=300, mcmc_chains=2, mcmc_cores=1, check_convergence=False
        ),
        backtest_config=BacktestConfig(seed=1, verbose=True),
        ranking_config=RankingConfig(n_simulations=4000, seed=1),
        fixtures=[("A", "D", 0), ("B", "C", 1)],
    )

    rankings = report.rankings.set_index("team")
    assert len(rankings) == 4
    assert rankings.loc["A", "wins"] == 2
    assert rankings.loc["A", "name"] == "Aardvarks"

    # D upsets A by 30 at a neutral site, so A ranks higher on wins than on margin
    assert (report.rankings["luck"] != 0).any()
    assert report.rankings["luck"].sum() == 0
    assert sorted(report.rankings["luck_rank"]) == [1, 2, 3, 4]

    accuracy = report.accuracy.set_index("model")
    assert 0.0 < accuracy.loc["heuristic", "accuracy"] < 1.0
    assert len(report.failures) == 0

    assert list(report.matchups["home"]) == ["A", "B"]
    assert report.margin_fit.trace is not None

    output = capsys.readouterr().out
    assert "Backtest accuracy" in output
    assert "Aardvarks" in output
