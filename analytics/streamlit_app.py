# analytics/streamlit_app.py
# dsnotes explorer: bandit runs (selection share, regret, arms) + cyclical encoding
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, List

import numpy as np
import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from dsnotes.cyclical import HOURS_PER_DAY, SECONDS_PER_DAY, cyclical_distance, encode
from dsnotes.engine import selection_frequency
from dsnotes.recorder import read_table
from dsnotes.synthetic import random_daily_timestamps


# ------------------------------- Config -------------------------------

DATA_ROOT = os.environ.get("DSNOTES_DATA_ROOT", "data")

# ------------------------------ Catalog -------------------------------

@st.cache_data(show_spinner=False, ttl=60)
def list_runs(data_root: str) -> List[str]:
    runs_dir = Path(data_root) / "runs"
    if not runs_dir.is_dir():
        return []
    # only completed runs; newest last
    done = [p for p in runs_dir.iterdir() if (p / "_done.marker").exists()]
    return [p.name for p in sorted(done, key=lambda p: p.stat().st_mtime)]

@st.cache_data(show_spinner=False, ttl=300)
def load_manifest(data_root: str, run_id: str) -> Dict:
    path = Path(data_root) / "runs" / run_id / "manifest.json"
    return json.loads(path.read_text(encoding="utf-8"))

@st.cache_data(show_spinner=True, ttl=300)
def load_table(data_root: str, run_id: str, table: str) -> pd.DataFrame:
    try:
        return read_table(Path(data_root) / "runs" / run_id, table)
    except FileNotFoundError:
        return pd.DataFrame()

# ------------------------------- Layout -------------------------------

st.set_page_config(page_title="dsnotes", layout="wide")
st.title("dsnotes — Bandit runs • Cyclical encoding")

with st.sidebar:
    st.subheader("Data Source")
    data_root = st.text_input("DSNOTES_DATA_ROOT", value=DATA_ROOT)
    runs = list_runs(data_root)
    run_id = st.selectbox("Run ID", runs, index=len(runs) - 1) if runs else ""
    window = st.number_input("Rolling window (trials)", 10, 5000, 100, 10)

tabs = st.tabs(["Bandit run", "Cyclical encoding"])

# ------------------------------ Bandit run ------------------------------
with tabs[0]:
    if not run_id:
        st.info(f"No completed runs under {data_root}/runs. Try `dsnotes simulate --config configs/three_slots.json`.")
    else:
        with st.expander("Manifest", expanded=False):
            st.json(load_manifest(data_root, run_id))

        trials_df = load_table(data_root, run_id, "trials")
        arms_df = load_table(data_root, run_id, "arms")

        if trials_df.empty or arms_df.empty:
            st.warning("Run is missing its trials or arms table.")
        else:
            c1, c2, c3 = st.columns(3)
            c1.metric("Trials", f"{len(trials_df)}")
            c2.metric("Total reward", f"{int(trials_df['reward'].sum())}")
            c3.metric("Cumulative regret", f"{float(trials_df['cum_regret'].iloc[-1]):.1f}")

            st.subheader("Arms")
            st.dataframe(arms_df)

            st.subheader("Selection share")
            names = list(arms_df.sort_values("arm")["arm_name"])
            sel = trials_df.sort_values("trial")["arm"].to_numpy(dtype=np.int64)
            share = selection_frequency(sel, len(names), window=int(window))
            fig = go.Figure()
            for i, name in enumerate(names):
                fig.add_trace(go.Scatter(x=np.arange(1, sel.size + 1), y=share[:, i], mode="lines", name=name))
            fig.update_layout(yaxis=dict(range=[0, 1]), margin=dict(l=0, r=0, t=0, b=0), height=400)
            st.plotly_chart(fig, use_container_width=True)

            st.subheader("Cumulative regret")
            fig = go.Figure(go.Scatter(x=trials_df["trial"], y=trials_df["cum_regret"], mode="lines"))
            fig.update_layout(margin=dict(l=0, r=0, t=0, b=0), height=300)
            st.plotly_chart(fig, use_container_width=True)

            obs_path = Path(data_root) / "runs" / run_id / "observer_stats.csv"
            if obs_path.exists():
                with st.expander("Observer stats", expanded=False):
                    st.dataframe(pd.read_csv(obs_path))

# --------------------------- Cyclical encoding ---------------------------
with tabs[1]:
    n = st.slider("Timestamps", 50, 5000, 1000, 50)
    seed = st.number_input("Seed", 0, 10_000, 7, 1)
    df = random_daily_timestamps(int(n), seed=int(seed))
    s, c = encode(df["seconds"], SECONDS_PER_DAY)

    fig = go.Figure(go.Scatter(
        x=c, y=s, mode="markers",
        marker=dict(size=4, color=df["hour"], colorscale="Twilight", showscale=True),
        text=df["timestamp"].dt.strftime("%H:%M:%S"),
    ))
    fig.update_layout(xaxis_title="cos", yaxis_title="sin", height=550,
                      yaxis=dict(scaleanchor="x"), margin=dict(l=0, r=0, t=0, b=0))
    st.plotly_chart(fig, use_container_width=True)

    st.subheader("Distance between two times")
    h1 = st.slider("First time (hour)", 0.0, float(HOURS_PER_DAY), 23.9, 0.1)
    h2 = st.slider("Second time (hour)", 0.0, float(HOURS_PER_DAY), 0.1, 0.1)
    c1, c2 = st.columns(2)
    c1.metric("Raw difference (h)", f"{abs(h1 - h2):.2f}")
    c2.metric("Encoded distance", f"{cyclical_distance(h1, h2, HOURS_PER_DAY):.4f}")
