import pandas as pd

import main


def _write_inputs(tmp_path, inputs):
    names = ("regional.csv", "exog_hist.csv", "exog_proj.csv", "prior.csv")
    paths = []
    for name, records in zip(names, inputs):
        fp = tmp_path / name
        pd.DataFrame(records).to_csv(fp, index=False)
        paths.append(str(fp))
    return paths


def test_cli_end_to_end(varied_inputs, tmp_path):
    regional, exog_hist, exog_proj, prior = _write_inputs(tmp_path, varied_inputs)
    out = tmp_path / "outputs"
    code = main.main([
        "--regional", regional, "--exog-hist", exog_hist, "--exog-proj", exog_proj,
        "--prior-forecast", prior, "--out-dir", str(out), "--no-plot",
    ])
    assert code == 0
    table = pd.read_csv(out / "Gm_Forecast_V3.csv")
    assert len(table) == 72
    assert (table["Gm P10"] >= 150).all() and (table["Gm P90"] <= 1500).all()
    assert not (out / "Gm_Forecast_V3.png").exists()


def test_cli_reports_failure(constant_inputs, tmp_path):
    regional, exog_hist, exog_proj, prior = constant_inputs
    regional = [dict(r, Fecha="2030-01-01") for r in regional]
    paths = _write_inputs(tmp_path, (regional, exog_hist, exog_proj, prior))
    code = main.main([
        "--regional", paths[0], "--exog-hist", paths[1], "--exog-proj", paths[2],
        "--prior-forecast", paths[3], "--out-dir", str(tmp_path / "out"),
    ])
    assert code == 1
