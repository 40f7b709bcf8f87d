"""
Contiguous Memory Allocation Visualizer: First Fit, Best Fit & Worst Fit

This application runs the same process workload through the three classic
partition placement strategies and visualizes the result:
    - Memory map of every strategy after the four simulation phases
    - Allocation success rate, peak and average utilization
    - External fragmentation (free block count and percentage)
    - Internal fragmentation left by unsplit blocks
    - The event log, including every coalescing merge

Built with Streamlit for the web interface and Plotly for visualizations.
"""

# =============================================================================
# IMPORTS
# =============================================================================

import streamlit as st                       # Web application framework
import plotly.graph_objects as go            # Interactive plotting library

from engine import AllocationStrategy, SPLIT_THRESHOLD
from loader import WorkloadError, parse_workload
from simulation import TERMINATE_ALL, PhasePlan, run_comparison
from utils import block_label, get_color


DEFAULT_WORKLOAD = """1024
1 212
2 417
3 112
4 426
5 95
6 60
7 180
8 300
"""


# =============================================================================
# CHART HELPERS
# =============================================================================

def memory_map_figure(result):
    """
    Build a horizontal stacked bar showing one strategy's final block list.

    Each block becomes one bar segment whose width is its size in KB, so the
    bar spans the whole address space from 0 to total_size.

    Args:
        result (SimulationResult): Outcome of one strategy run

    Returns:
        go.Figure: The memory map
    """
    fig = go.Figure()
    for block in result.blocks:
        label = block_label(block)
        fig.add_trace(go.Bar(
            x=[block.size],
            y=[result.strategy],
            base=[block.start],
            orientation="h",
            marker_color=get_color(not block.free, block.owner),
            marker_line=dict(color="black", width=1),
            text=label,
            hovertext=f"{label} @ {block.start}KB",
            hoverinfo="text",
        ))

    fig.update_layout(
        height=140,
        showlegend=False,
        barmode="overlay",
        margin=dict(l=10, r=10, t=10, b=10),
        xaxis=dict(range=[0, result.total_size], title="Address (KB)"),
    )
    return fig


def comparison_figure(results):
    """Grouped bars comparing success rate and fragmentation per strategy."""
    strategies = list(results.keys())
    fig = go.Figure()
    fig.add_trace(go.Bar(
        name="Success Rate (%)",
        x=strategies,
        y=[r.stats.success_rate for r in results.values()],
    ))
    fig.add_trace(go.Bar(
        name="Fragmentation (%)",
        x=strategies,
        y=[r.stats.fragmentation_percentage for r in results.values()],
    ))
    fig.add_trace(go.Bar(
        name="Peak Utilization (%)",
        x=strategies,
        y=[r.stats.peak_utilization * 100 for r in results.values()],
    ))
    fig.update_layout(height=350, barmode="group", title="Strategy Comparison")
    return fig


# =============================================================================
# STREAMLIT UI - Web Application Interface
# =============================================================================

st.set_page_config(page_title="Contiguous Memory Allocation Visualizer", layout="wide")
st.title("Contiguous Memory Allocation: First Fit, Best Fit & Worst Fit")

# -----------------------------------------------------------------------------
# SIDEBAR - Workload
# -----------------------------------------------------------------------------

st.sidebar.header("Workload")

# First line: memory size in KB; then "id size [arrival [duration]]" per line
workload_text = st.sidebar.text_area(
    "Workload (memory size, then one process per line)",
    value=DEFAULT_WORKLOAD,
    height=220,
)

try:
    workload = parse_workload(workload_text)
except WorkloadError as e:
    st.sidebar.error(str(e))
    st.stop()  # Nothing to simulate without a valid workload

process_ids = [p.id for p in workload.processes]
st.sidebar.caption(f"Memory: {workload.memory_size}KB, {len(process_ids)} processes")

st.sidebar.markdown("---")

# -----------------------------------------------------------------------------
# SIDEBAR - Phase Decisions
# -----------------------------------------------------------------------------

st.sidebar.header("Phases")

# Phase 1: how many processes (in file order) to load first
initial_count = st.sidebar.number_input(
    "Phase 1: processes to allocate",
    min_value=1,
    max_value=len(process_ids),
    value=min(5, len(process_ids)),
)

# Phase 2: which running processes to terminate
terminate_all = st.sidebar.checkbox("Phase 2: terminate all running processes")
terminate_ids = st.sidebar.multiselect(
    "Phase 2: process IDs to terminate",
    options=process_ids,
    default=process_ids[1:2],
    disabled=terminate_all,
)

# Phase 3: additional processes from the not-yet-allocated ones
additional_count = st.sidebar.number_input(
    "Phase 3: additional processes to allocate",
    min_value=0,
    max_value=len(process_ids),
    value=min(2, len(process_ids)),
)

# Phase 4: stress allocation as a percentage of remaining free memory
stress_percent = st.sidebar.slider(
    "Phase 4: large process (% of free memory)",
    min_value=1.0,
    max_value=100.0,
    value=60.0,
)

try:
    plan = PhasePlan(
        initial_count=int(initial_count),
        terminate_ids=TERMINATE_ALL if terminate_all else terminate_ids,
        additional_count=int(additional_count),
        stress_percent=float(stress_percent),
    )
except ValueError as e:
    st.sidebar.error(str(e))
    st.stop()

# -----------------------------------------------------------------------------
# SIMULATION - one isolated run per strategy
# -----------------------------------------------------------------------------

results = run_comparison(workload.memory_size, workload.processes, plan)

# =============================================================================
# MAIN CONTENT AREA
# =============================================================================

st.subheader("Final Memory Maps")
for strategy in AllocationStrategy.ALL:
    st.plotly_chart(memory_map_figure(results[strategy]), use_container_width=True)

col1, col2 = st.columns([1, 1])

# ----- Summary Table -----
with col1:
    st.subheader("Summary")
    rows = []
    for strategy, result in results.items():
        stats = result.stats
        rows.append({
            "strategy": strategy,
            "success": f"{stats.successful_allocations}/{stats.allocation_attempts}",
            "success_rate": round(stats.success_rate, 1),
            "peak_util_%": round(stats.peak_utilization * 100, 1),
            "avg_util_%": round(stats.avg_utilization * 100, 1),
            "free_blocks": stats.external_fragmentation,
            "fragmentation_%": round(stats.fragmentation_percentage, 1),
            "internal_frag_kb": stats.internal_fragmentation,
            "block_count": result.block_count,
        })
    st.table(rows)

# ----- Comparison Chart -----
with col2:
    st.plotly_chart(comparison_figure(results), use_container_width=True)

# ----- Per-strategy detail -----
tabs = st.tabs(list(results.keys()))
for tab, (strategy, result) in zip(tabs, results.items()):
    with tab:
        left, right = st.columns([1, 1])
        with left:
            st.markdown("**Block List**")
            st.table([
                {
                    "start": b.start,
                    "size": b.size,
                    "status": "Free" if b.free else "Allocated",
                    "process": b.owner if b.owner is not None else "-",
                }
                for b in result.blocks
            ])
            st.markdown("**Processes**")
            st.table([
                {"id": p.id, "size": p.requested_size, "state": p.state}
                for p in result.processes
            ])
        with right:
            st.markdown("**Event Log**")
            for ev in result.event_log:
                st.write(ev)

# =============================================================================
# FOOTER - Usage Tips
# =============================================================================

st.markdown("---")
st.markdown(
    "**Usage tips**:\n"
    "- Edit the workload: first line is memory size (KB), then `id size` per line.\n"
    "- Terminate processes in phase 2 to create holes, then watch how each strategy fills them.\n"
    f"- Blocks are only split when more than {SPLIT_THRESHOLD}KB would be left over; "
    "the rest shows up as internal fragmentation.\n"
    "- Raise the phase 4 percentage until a strategy fails for lack of contiguous space."
)
