"""
stafftrak/reports.py
District reporting queries (direct Postgres via query_df) and the pandas
summaries the Reports page charts.
"""

import pandas as pd
from psycopg2 import sql

from stafftrak.db import query_df
from stafftrak.evaluations import evaluations_table
from stafftrak.scoring import LOWEST_RATING, NO_RATING, RATING_BANDS
from stafftrak.status import derive_meeting_status

RATING_ORDER = [label for _minimum, label in RATING_BANDS] + [LOWEST_RATING, NO_RATING]

_EVALUATIONS_SQL = """
    SELECT  p.id              AS staff_id,
            p.full_name,
            p.role,
            p.staff_type,
            ev.full_name      AS evaluator_name,
            s.overall_score,
            s.overall_rating,
            s.status,
            s.evaluator_signature_at,
            s.staff_signature_at
    FROM    profiles p
    LEFT JOIN profiles ev ON ev.id = p.evaluator_id
    LEFT JOIN LATERAL (
        SELECT *
        FROM   {evaluations} se
        WHERE  se.staff_id = p.id
        ORDER BY se.created_at DESC
        LIMIT 1
    ) s ON TRUE
    WHERE   p.is_active = TRUE
      AND   p.role IN ('licensed_staff', 'classified_staff')
    ORDER BY p.full_name
"""

_MEETINGS_SQL = """
    SELECT  m.id,
            m.meeting_type,
            m.scheduled_at,
            m.completed_at,
            m.status,
            ev.full_name AS evaluator_name
    FROM    meetings m
    JOIN    profiles ev ON ev.id = m.evaluator_id
"""


def evaluation_overview_sql() -> sql.Composed:
    """The overview query against the configured evaluations table."""
    return sql.SQL(_EVALUATIONS_SQL).format(evaluations=sql.Identifier(evaluations_table()))


def load_evaluation_overview() -> pd.DataFrame:
    """One row per active staff member with their newest evaluation, if any."""
    return query_df(evaluation_overview_sql())


def load_meetings() -> pd.DataFrame:
    return query_df(_MEETINGS_SQL)


def rating_distribution(df: pd.DataFrame) -> pd.DataFrame:
    """
    Count staff per overall rating, in band order.

    Staff with no rating yet are counted under 'N/A'.  Every band appears,
    with zero counts where nobody falls in it.
    """
    if df.empty or "overall_rating" not in df.columns:
        return pd.DataFrame({"rating": RATING_ORDER, "count": [0] * len(RATING_ORDER)})
    ratings = df["overall_rating"].fillna(NO_RATING).replace("", NO_RATING)
    counts = ratings.value_counts().reindex(RATING_ORDER, fill_value=0)
    return pd.DataFrame({"rating": counts.index, "count": counts.values})


def meeting_completion_by_evaluator(df: pd.DataFrame, now=None) -> pd.DataFrame:
    """
    Per evaluator: count of meetings in each derived status.

    Columns: evaluator_name plus one column per status label.
    """
    if df.empty:
        return pd.DataFrame(columns=["evaluator_name"])
    df = df.copy()
    df["display_status"] = [
        derive_meeting_status(row, now).label for row in df.to_dict("records")
    ]
    table = (
        df.pivot_table(
            index="evaluator_name",
            columns="display_status",
            values="id",
            aggfunc="count",
            fill_value=0,
        )
        .reset_index()
    )
    table.columns.name = None
    return table


def evaluation_export(df: pd.DataFrame) -> pd.DataFrame:
    """Flatten the overview into the columns used for CSV export."""
    columns = {
        "full_name":      "Staff Member",
        "staff_type":     "Staff Type",
        "evaluator_name": "Evaluator",
        "overall_score":  "Overall Score",
        "overall_rating": "Summative Rating",
        "status":         "Status",
    }
    if df.empty:
        return pd.DataFrame(columns=list(columns.values()))
    out = df.reindex(columns=list(columns)).rename(columns=columns)
    out["Status"] = out["Status"].fillna("not_started").str.replace("_", " ").str.title()
    return out.fillna("")
