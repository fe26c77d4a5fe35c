import numpy as np
import pandas as pd
import pytest


def exog_record(date, gas=2.0, cpi=130.0, fx=4000.0, deficit=1.0, hydro=65.0,
                thermal=25.0, reservoir="70%", phase="Neutral"):
    return {
        "Fecha": date,
        "Precio_$/m3": gas,
        "IPC Índice": cpi,
        "TRM": fx,
        "Deficit_%": deficit,
        "Hidráulica (%)": hydro,
        "Térmica (%)": thermal,
        "Embalses SIN %": reservoir,
        "Fase ENSO": phase,
    }


def month_range(start, periods):
    return [d.strftime("%Y-%m-%d") for d in pd.date_range(start, periods=periods, freq="MS")]


@pytest.fixture
def constant_inputs():
    """Jan-Dec 2024 history at 300, Jan-Dec 2026 projection, prior forecast 300."""
    hist_dates = month_range("2024-01-01", 12)
    proj_dates = month_range("2026-01-01", 12)
    regional = [{"Fecha": d, "Gm_Promedio": 300.0} for d in hist_dates]
    exog_hist = [exog_record(d) for d in hist_dates]
    exog_proj = [exog_record(d) for d in proj_dates]
    prior = [{"Mes_Año": d[:7], "Gm_Promedio": 300.0} for d in proj_dates]
    return regional, exog_hist, exog_proj, prior


@pytest.fixture
def varied_inputs():
    """Four years of noisy history across phases and a 2026-2031 projection."""
    rng = np.random.default_rng(7)
    hist_dates = month_range("2021-01-01", 48)
    proj_dates = month_range("2026-01-01", 72)
    phases = ["La Niña", "El Niño", "Neutral"]

    regional, exog_hist = [], []
    for i, d in enumerate(hist_dates):
        gas = 1.5 + 0.5 * rng.random()
        hydro = 50 + 30 * rng.random()
        regional.append({"Fecha": d, "Gm_Promedio": 200 + 60 * gas + 1.5 * hydro + rng.normal(0, 10)})
        exog_hist.append(exog_record(d, gas=gas, cpi=110 + i, fx=3800 + 10 * i,
                                     deficit=rng.random(), hydro=hydro,
                                     thermal=100 - hydro, phase=phases[i % 3]))
    exog_proj = [
        exog_record(d, gas=1.8, cpi=160 + i, fx=4300 + 5 * i, deficit=0.5,
                    hydro=60.0, thermal=40.0, phase=phases[(i // 6) % 3])
        for i, d in enumerate(proj_dates)
    ]
    prior = [{"Mes_Año": d[:7], "Gm_Promedio": 320.0 + 2 * i}
             for i, d in enumerate(proj_dates)]
    return regional, exog_hist, exog_proj, prior
