import streamlit as st
import pandas as pd
import logging
from datetime import date, datetime

from inspection_brief import build_roster_frame, calculate_roster_stats, generate_roster_brief
from mufattish.config import Settings
from mufattish.eligibility.rules import PRIORITY_MEDIUM, PRIORITY_URGENT
from mufattish.printing import promotion_list_pdf, roster_brief_pdf
from mufattish.session.backup import BackupError, dumps_backup
from mufattish.session.session import InspectorSession
from mufattish.session.store import JsonFileStore
from mufattish.session.transport import CsvFileTransport
from mufattish.sync.csv_io import TabularImportError, read_table, rows_to_csv_bytes
from mufattish.sync.normalizer import format_for_display
from mufattish.sync.seminars import serialize_seminars

settings = Settings.from_env()
logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

# Page config
st.set_page_config(
    page_title="Mufattish | Inspector Roster",
    page_icon="📋",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS
st.markdown("""
<style>
    :root {
        --primary-color: #1e3a8a;
        --secondary-color: #3b82f6;
        --text-dark: #1f2937;
    }
    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
</style>
""", unsafe_allow_html=True)

PRIORITY_LABELS = {
    PRIORITY_URGENT: "🔴 urgent",
    PRIORITY_MEDIUM: "🟠 medium",
}


def get_session():
    """One InspectorSession per browser session, backed by the JSON store"""
    if "inspector_session" not in st.session_state:
        store = JsonFileStore(settings.store_path)
        transport = CsvFileTransport(settings.store_path.rsplit(".", 1)[0] + "_table.csv")
        st.session_state.inspector_session = InspectorSession(store, transport, settings).load()
    return st.session_state.inspector_session


session = get_session()

# Sidebar settings
with st.sidebar:
    st.markdown("## Settings")
    settings.inspector_name = st.text_input("Inspector name", value=settings.inspector_name)
    settings.wilaya = st.text_input("Wilaya", value=settings.wilaya)
    settings.district = st.text_input("District", value=settings.district)
    bonus = st.number_input(
        "Regional seniority bonus (months per year)",
        min_value=0.0, max_value=12.0,
        value=float(settings.seniority_bonus_months or 0.0),
        help="0 disables the bonus"
    )
    settings.seniority_bonus_months = bonus or None
    campaign_year = st.number_input("Promotion campaign year", min_value=2000, max_value=2100,
                                    value=date.today().year, step=1)

session.settings = settings

st.markdown("# 📋 Inspector Roster")
st.markdown("Teacher table sync, inspection priorities and the promotion campaign list.")

# Upload
st.markdown("## Import")
uploaded_file = st.file_uploader(
    "Teacher table (CSV / Excel) or backup (JSON)",
    type=['csv', 'xlsx', 'json'],
    label_visibility="collapsed"
)
import_mode = st.radio("Table import mode", ["Merge by name", "Replace roster"], horizontal=True)

if uploaded_file is not None and st.button("⬆️ Apply import", type="primary"):
    try:
        if uploaded_file.name.lower().endswith('.json'):
            contents = session.restore(uploaded_file.getvalue().decode('utf-8'), uploaded_file.name)
            st.success(f"✅ Backup restored: **{len(contents.teachers)} teachers**")
        else:
            rows = read_table(uploaded_file.getvalue(), uploaded_file.name)
            if import_mode == "Replace roster":
                result = session.import_rows(rows)
                st.success(f"✅ Imported **{len(result.teachers)} teachers**")
                if result.missing_columns:
                    st.warning(f"⚠️ {len(result.missing_columns)} column(s) read by position: "
                               f"{', '.join(result.missing_columns[:8])}")
            else:
                merged = session.merge_rows(rows)
                st.success(f"✅ {len(merged.updated)} updated, {len(merged.added)} added")
    except (TabularImportError, BackupError) as e:
        st.error("❌ Import failed")
        st.code(str(e))
    except Exception as e:
        st.error(f"❌ Error processing file: {str(e)}")
        with st.expander("See error details"):
            st.exception(e)

if not session.teachers:
    st.info("👆 Upload a teacher table or a backup file to get started")
    st.stop()

# Derived views
today = date.today()
df = build_roster_frame(session.teachers, session.reports_by_teacher_id, today, settings.seniority_bonus_months)
stats = calculate_roster_stats(df)
candidates = session.promotion_list(int(campaign_year))
brief = generate_roster_brief(df, stats, candidates, int(campaign_year), settings.inspector_name)

# Whole-table re-sync once edits have gone quiet
if session.flush_if_due():
    st.toast(f"Table file synced at {datetime.now():%H:%M:%S}")

st.markdown("### Key Findings")
col1, col2, col3, col4 = st.columns(4)
with col1:
    st.metric("Teachers", stats['total_teachers'])
with col2:
    st.metric("Urgent inspections", stats['urgent_count'])
with col3:
    st.metric("Promotion candidates", len(candidates))
with col4:
    st.metric("Average mark", stats['average_mark'])

tab1, tab2, tab3, tab4 = st.tabs(["🚦 Priorities", "⬆️ Promotion list", "📄 Brief", "💾 Export"])

with tab1:
    table = df.copy()
    table['priority'] = table['priority'].map(lambda p: PRIORITY_LABELS.get(p, "-"))
    order = {PRIORITY_LABELS[PRIORITY_URGENT]: 0, PRIORITY_LABELS[PRIORITY_MEDIUM]: 1}
    table = table.sort_values('priority', key=lambda s: s.map(lambda p: order.get(p, 2)), kind='stable')
    st.dataframe(table.drop(columns=['id']), use_container_width=True, hide_index=True)

with tab2:
    st.markdown(f"### Promotion campaign {int(campaign_year)}")
    if not candidates:
        st.info("No teacher meets the seniority and mark conditions for this campaign.")
    else:
        st.dataframe(pd.DataFrame([{
            'name': c.teacher.full_name,
            'school': c.school_name,
            'echelon': c.teacher.echelon,
            'echelon date': format_for_display(c.teacher.echelon_date),
            'last mark': c.teacher.last_mark,
            'ceiling': c.max_allowed_mark,
            'gap': c.mark_gap,
        } for c in candidates]), use_container_width=True, hide_index=True)
    st.download_button(
        label="📥 Download promotion list (PDF)",
        data=promotion_list_pdf(candidates, int(campaign_year), settings.inspector_name, settings.pdf_font_path),
        file_name=f"promotion_list_{int(campaign_year)}.pdf",
        mime="application/pdf",
        use_container_width=True
    )

with tab3:
    st.code(brief, language=None)
    st.download_button(
        label="📥 Download brief (PDF)",
        data=roster_brief_pdf(brief, font_path=settings.pdf_font_path),
        file_name=f"roster_brief_{today.isoformat()}.pdf",
        mime="application/pdf",
        use_container_width=True
    )

with tab4:
    rows = session.serialize()
    st.download_button(
        label="📥 Download teacher table (CSV)",
        data=rows_to_csv_bytes(rows),
        file_name=f"mufattish_table_{today.isoformat()}.csv",
        mime="text/csv",
        use_container_width=True
    )
    st.download_button(
        label="📥 Download backup (JSON)",
        data=dumps_backup(session.backup_document()).encode('utf-8'),
        file_name=f"mufattish_backup_{today.isoformat()}.json",
        mime="application/json",
        use_container_width=True
    )
    if session.seminars:
        st.download_button(
            label="📥 Download seminar ledger (CSV)",
            data=rows_to_csv_bytes(serialize_seminars(session.seminars)),
            file_name=f"mufattish_seminars_{today.isoformat()}.csv",
            mime="text/csv",
            use_container_width=True
        )
    if st.button("🔄 Sync table file now", use_container_width=True):
        if session.flush_if_due(force=True):
            st.success(f"✅ Table written at {datetime.now():%H:%M:%S}")
        else:
            st.warning("⚠️ Nothing to sync")
