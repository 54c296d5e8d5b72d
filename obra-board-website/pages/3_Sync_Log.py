"""Sync log: every write the boards sent to the backend."""

from datetime import timedelta

import pandas as pd
import streamlit as st

from obra_board.sync_log import (
    cleanup_old_logs,
    get_operation_stats,
    get_recent_errors,
    get_sync_call_stats,
    get_sync_calls,
    init_db,
)
from obra_board.clock import utcnow
from obra_board.theme import set_theme
from obra_board.ui import get_backend

set_theme(page_title="Log de Sincronização", page_icon="📊")

get_backend()
init_db()

st.markdown(
    """
    <div class="obra-hero">
        <h1>Log de Sincronização</h1>
        <p>Movimentações, criações, edições e exclusões enviadas ao banco, com duração e erros</p>
    </div>
    """,
    unsafe_allow_html=True,
)

with st.sidebar:
    st.markdown("### Período")

    time_options = {
        "Última hora": timedelta(hours=1),
        "Últimas 24 horas": timedelta(hours=24),
        "Últimos 7 dias": timedelta(days=7),
        "Últimos 30 dias": timedelta(days=30),
    }
    selected_range = st.selectbox("Período", options=list(time_options.keys()), index=1)
    since = utcnow() - time_options[selected_range]

    status_filter = st.selectbox("Status", options=["Todos", "Sucesso", "Falha"], index=0)

    st.divider()
    if st.button("Atualizar", use_container_width=True):
        st.rerun()

    st.markdown("### Manutenção")
    if st.button("Limpar registros antigos", use_container_width=True, type="secondary"):
        with st.spinner("Limpando..."):
            deleted = cleanup_old_logs()
            st.success(f"{deleted} registro(s) removido(s)")

stats = get_sync_call_stats(since=since)

stat_cols = st.columns(4)
cards = [
    (f"{stats['total_calls']:,}", "Chamadas"),
    (f"{stats['success_rate']}%", "Sucesso"),
    (f"{(stats['avg_duration_ms'] or 0):.0f} ms", "Duração média"),
    (f"{stats['failed_calls']:,}", "Falhas"),
]
for col, (value, label) in zip(stat_cols, cards):
    col.markdown(
        f"<div class='stat-card'><div class='stat-value'>{value}</div><div class='stat-label'>{label}</div></div>",
        unsafe_allow_html=True,
    )

st.divider()

tabs = st.tabs(["Operações", "Erros", "Registros"])

with tabs[0]:
    op_stats = get_operation_stats(since=since)
    if op_stats:
        df_ops = pd.DataFrame(op_stats)
        st.dataframe(
            df_ops,
            use_container_width=True,
            hide_index=True,
            column_config={
                "operation": st.column_config.TextColumn("Operação"),
                "total_calls": st.column_config.NumberColumn("Total", format="%d"),
                "successful_calls": st.column_config.NumberColumn("Sucesso", format="%d"),
                "failed_calls": st.column_config.NumberColumn("Falhas", format="%d"),
                "success_rate": st.column_config.ProgressColumn("Taxa de sucesso", min_value=0, max_value=100, format="%.1f%%"),
                "avg_duration_ms": st.column_config.NumberColumn("Duração média (ms)", format="%.1f"),
            },
        )
        st.bar_chart(df_ops.set_index("operation")[["successful_calls", "failed_calls"]], color=["#22c55e", "#ef4444"])
    else:
        st.info("Nenhuma chamada no período.")

with tabs[1]:
    errors = get_recent_errors(since=since, limit=50)
    if errors:
        for err in errors:
            with st.expander(f"{err['operation']} · {err['error_type'] or 'Erro'} · {err['started_at']}"):
                st.markdown(f"**Tarefa:** `{err['task_id'] or '-'}`  \n**Origem:** {err['source'] or '-'}")
                st.code(err["error_message"] or "", language="text")
                if err["payload_json"]:
                    st.code(err["payload_json"], language="json")
    else:
        st.success("Nenhum erro no período.")

with tabs[2]:
    success = {"Todos": None, "Sucesso": True, "Falha": False}[status_filter]
    calls = get_sync_calls(success=success, since=since, limit=500)
    if calls:
        df_calls = pd.DataFrame(calls)[
            ["started_at", "operation", "source", "task_id", "success", "duration_ms", "error_type", "payload_json"]
        ]
        st.dataframe(df_calls, use_container_width=True, hide_index=True)
    else:
        st.info("Nenhum registro encontrado.")
