"""
Virtual Memory Visualizer — TLB, Page Table & Page Replacement

This application provides an interactive simulation and visualization of the
address translation path of a demand-paged virtual memory manager:
    - Logical address split into page number and offset
    - TLB lookup with FIFO replacement of TLB entries
    - Page table lookup and page fault handling
    - Page replacement algorithms (FIFO, LRU) once physical frames run out

Built with Streamlit for the web interface and Plotly for visualizations.
The translation engine itself lives in engine.py.
"""

# =============================================================================
# IMPORTS
# =============================================================================

import streamlit as st                       # Web application framework
import plotly.graph_objects as go            # Interactive plotting library

from engine import MemoryConfig, ReplacementPolicy, Translator, make_policy
from utils import generate_backing_store, get_color, parse_address, parse_address_sequence


@st.cache_data
def cached_backing_store(pages: int, page_size: int, seed: int) -> bytes:
    return generate_backing_store(MemoryConfig(pages=pages, page_size=page_size), seed)


def compare_policies(backing, config: MemoryConfig, addresses):
    """Run every registered policy over the same sequence; return their stats."""
    results = {}
    for name in (ReplacementPolicy.FIFO, ReplacementPolicy.LRU):
        translator = Translator(backing, make_policy(name, config.frames), config, event_log_size=0)
        for _ in translator.run(addresses):
            pass
        results[name] = translator.get_stats()
    return results


# =============================================================================
# STREAMLIT UI - Web Application Interface
# =============================================================================

st.set_page_config(page_title="Virtual Memory Visualizer", layout="wide")

# -----------------------------------------------------------------------------
# SIDEBAR NAVIGATION
# -----------------------------------------------------------------------------

page = st.sidebar.radio("Choose View", ["Simulator", "Concepts"])

st.title("Virtual Memory Visualizer — TLB, Page Table & Replacement")

# =============================================================================
# CONCEPTS PAGE - Educational Content
# =============================================================================

if page == "Concepts":
    st.header("Operating System Concepts Used in This Project")
    st.markdown(
        """
        ## 📘 Key Concepts

        ### **1. Address Translation**
        - A logical address is split into a *page number* (high bits) and an *offset* (low bits).
        - The physical address is `(frame << offset_bits) | offset`: the offset never changes.

        ### **2. TLB (Translation Lookaside Buffer)**
        - A small cache of recent page → frame mappings, checked before the page table.
        - Entries are replaced **first in, first out**, no matter how often they hit.

        ### **3. Page Table**
        - Maps each logical page to the physical frame holding it, or to nothing.
        - At most one page maps to any frame.

        ### **4. Page Fault**
        - Occurs when a referenced page has no frame.
        - The page is copied from the **backing store** into a free frame, or into a victim frame.

        ### **5. Page Replacement Algorithms**
        When every frame is occupied, a victim must be chosen:

        #### **FIFO (First In First Out)**
        - Evict the frame that was filled longest ago.

        #### **LRU (Least Recently Used)**
        - Evict the frame whose last access (TLB hits included) is oldest.

        ### **6. Stale TLB Entries**
        - If an evicted page stays in the TLB, a later access can hit a frame now owned by another page.
        - Untick *Invalidate TLB on eviction* to reproduce that behaviour.
        """
    )
    st.stop()

# =============================================================================
# SIMULATOR PAGE - Main Interactive Interface
# =============================================================================

# -----------------------------------------------------------------------------
# SIDEBAR - Simulation Settings
# -----------------------------------------------------------------------------

st.sidebar.header("Simulation Settings")

frames = st.sidebar.number_input("Physical frames", min_value=1, max_value=256, value=64, step=1)
tlb_size = st.sidebar.number_input("TLB entries", min_value=1, max_value=64, value=16, step=1)
policy = st.sidebar.selectbox(
    "Replacement Policy",
    options=[ReplacementPolicy.FIFO, ReplacementPolicy.LRU]
)
invalidate = st.sidebar.checkbox("Invalidate TLB on eviction", value=True)

config = MemoryConfig(
    tlb_size=int(tlb_size),
    frames=int(frames),
    invalidate_tlb_on_evict=invalidate,
)

st.sidebar.subheader("Backing Store")
backing_upload = st.sidebar.file_uploader("BACKING_STORE.bin (optional)", type=["bin"])
seed = st.sidebar.number_input("Random page image seed", min_value=0, value=0, step=1)

backing = None
backing_label = f"random, seed={int(seed)}"
if backing_upload is not None:
    data = backing_upload.getvalue()
    if len(data) < config.logical_memory_size:
        st.sidebar.error(
            f"Backing store holds {len(data)} bytes, {config.logical_memory_size} required; "
            "using a random page image"
        )
    else:
        backing = data
        backing_label = backing_upload.name
if backing is None:
    backing = cached_backing_store(config.pages, config.page_size, int(seed))

# -----------------------------------------------------------------------------
# SESSION STATE - Translator Persistence
# -----------------------------------------------------------------------------

settings = (config, policy, backing_label)
if 'translator' not in st.session_state or st.session_state.settings != settings:
    st.session_state.translator = Translator(backing, make_policy(policy, config.frames), config)
    st.session_state.settings = settings
    st.session_state.cursor = 0
    st.session_state.history = []

translator: Translator = st.session_state.translator

st.sidebar.markdown("---")

# -----------------------------------------------------------------------------
# SIDEBAR - Access Sequence Controls
# -----------------------------------------------------------------------------

st.sidebar.header("Access / Workload")

access_input = st.sidebar.text_area(
    "Logical addresses (comma separated)",
    value="16916,62493,30198,53683,40185,28781,24462,48399,64815,18295"
)
address_upload = st.sidebar.file_uploader("addresses.txt (overrides the list)", type=["txt"])

try:
    if address_upload is not None:
        addresses = [parse_address(line) for line in address_upload.getvalue().decode(errors="replace").splitlines()]
    else:
        addresses = parse_address_sequence(access_input)
except ValueError as e:
    st.sidebar.error(f"Bad address list: {e}")
    addresses = []

if st.sidebar.button("Reset Simulation"):
    translator.reset()
    st.session_state.cursor = 0
    st.session_state.history = []
    st.sidebar.success("Simulation reset")

# =============================================================================
# MAIN CONTENT AREA - Two Column Layout
# =============================================================================

col1, col2 = st.columns([1, 2])

# -----------------------------------------------------------------------------
# LEFT COLUMN - Controls and Event Log
# -----------------------------------------------------------------------------

with col1:
    st.subheader("Controls")
    st.caption(f"{st.session_state.cursor} of {len(addresses)} addresses translated")

    if st.button("Step Once"):
        if st.session_state.cursor < len(addresses):
            t = translator.translate(addresses[st.session_state.cursor])
            st.session_state.cursor += 1
            st.session_state.history.append(t)
            outcome = "TLB HIT" if t.tlb_hit else ("FAULT" if t.page_fault else "PAGE TABLE HIT")
            st.success(f"{t.logical_address} -> {t.physical_address} ({outcome}, value={t.value})")
        else:
            st.warning("No addresses left to translate")

    if st.button("Run Sequence"):
        remaining = addresses[st.session_state.cursor:]
        if len(remaining) == 0:
            st.warning("No addresses left to translate")
        else:
            st.session_state.history.extend(translator.run(remaining))
            st.session_state.cursor = len(addresses)
            st.success("Sequence run finished")

    st.subheader("Recent Translations")
    if st.session_state.history:
        st.table([
            {
                "virtual": t.logical_address,
                "page": t.page,
                "offset": t.offset,
                "frame": t.frame,
                "physical": t.physical_address,
                "value": t.value,
                "tlb": "hit" if t.tlb_hit else "miss",
                "fault": t.page_fault,
            }
            for t in st.session_state.history[-10:][::-1]
        ])
    else:
        st.write("Nothing translated yet")

    # most recent 20 events, newest first
    st.subheader("Event Log")
    for ev in list(translator.event_log)[-20:][::-1]:
        st.write(ev)

# -----------------------------------------------------------------------------
# RIGHT COLUMN - Visualizations
# -----------------------------------------------------------------------------

with col2:
    # ----- Physical Frames Visualization -----
    st.subheader("Physical Frames")
    frame_table = translator.get_frame_table()

    fig = go.Figure()
    x, y, text, colors = [], [], [], []
    for f in frame_table:
        label = f"F{f.frame_no}: " + (f"P{f.page_no}" if f.page_no is not None else "Free")
        text.append(label)
        colors.append(get_color(f.occupied))
        x.append(f.frame_no)
        y.append(1)

    fig.add_trace(go.Bar(x=x, y=y, text=text, marker_color=colors, hovertext=text, hoverinfo='text'))
    fig.update_layout(height=150, showlegend=False, yaxis=dict(showticklabels=False))
    st.plotly_chart(fig, use_container_width=True)

    # ----- Page Table / TLB -----
    tcol1, tcol2 = st.columns(2)
    with tcol1:
        st.subheader("Page Table (resident pages)")
        ptable = translator.get_page_table_snapshot()
        if len(ptable) == 0:
            st.write("Page table empty — no pages loaded yet")
        else:
            st.table([{"page": p, "frame": f} for p, f in sorted(ptable.items())])
    with tcol2:
        st.subheader("TLB (oldest first)")
        tlb_rows = [{"page": e.page, "frame": e.frame} for e in translator.get_tlb_snapshot()]
        if tlb_rows:
            st.table(tlb_rows)
        else:
            st.write("TLB empty")

    # ----- Statistics Display -----
    st.subheader("Statistics")
    stats = translator.get_stats()

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Addresses", stats['total_addresses'])
    m2.metric("Page Faults", stats['page_faults'])
    m3.metric("Fault Rate", f"{stats['page_fault_rate']:.3f}")
    m4.metric("TLB Hit Rate", f"{stats['tlb_hit_rate']:.3f}")

    fig2 = go.Figure()
    fig2.add_trace(go.Bar(
        x=["TLB Hits", "Page Table Hits", "Page Faults"],
        y=[stats['tlb_hits'], stats['page_table_hits'], stats['page_faults']]
    ))
    fig2.update_layout(height=300, title="Where translations were resolved")
    st.plotly_chart(fig2, use_container_width=True)

    # ----- Replacement State -----
    if translator.policy.name == ReplacementPolicy.FIFO:
        st.subheader("Replacement Queue (FIFO order)")
        st.write(translator.policy.snapshot())
    else:
        st.subheader("Last Use per Frame (LRU clock)")
        st.write({f: t for f, t in enumerate(translator.policy.snapshot()) if t >= 0})

    # ----- FIFO vs LRU -----
    st.subheader("FIFO vs LRU on this sequence")
    if addresses:
        comparison = compare_policies(backing, config, addresses)
        fig3 = go.Figure()
        for name, s in comparison.items():
            fig3.add_trace(go.Bar(
                name=name,
                x=["Page Fault Rate", "TLB Hit Rate"],
                y=[s['page_fault_rate'], s['tlb_hit_rate']]
            ))
        fig3.update_layout(barmode="group", height=300)
        st.plotly_chart(fig3, use_container_width=True)
    else:
        st.write("Enter an address sequence to compare policies")

# =============================================================================
# FOOTER - Usage Tips and Examples
# =============================================================================

st.markdown("---")
st.markdown(
    "**Usage tips**:\n"
    "- Enter logical addresses (or upload an address file) and click **Run Sequence**.\n"
    "- Upload `BACKING_STORE.bin` to see the real page contents; otherwise a random image is used.\n"
    "- Switch replacement policy between FIFO and LRU; the comparison chart runs both.\n"
    "- Lower the frame count to force replacements."
)

st.markdown("---")
st.markdown(
    "**Instructor examples**:\n"
    "1) FIFO: 2 frames, sequence `0,256,512` → page 0 is evicted from frame 0.\n"
    "2) LRU: 2 frames, sequence `0,256,0,512` → page 1 is evicted from frame 1 instead."
)
