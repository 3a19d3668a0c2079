"""add_stats_materialized_views

Revision ID: 8c4e2d6a1b93
Revises: 3f9a1c2b7d10
Create Date: 2025-11-10 18:27:05.540193

The views cover the reporting window configured at migration time
(STATS_WINDOW_START/END or STATS_YEAR) and record it in window_start /
window_end. Readers ignore rows built for a different window, so re-run this
revision (downgrade, upgrade) after changing the window.
"""

from datetime import date

from alembic import op
from libs.common.config import get_settings

# revision identifiers, used by Alembic.
revision = "8c4e2d6a1b93"
down_revision = "3f9a1c2b7d10"
branch_labels = None
depends_on = None


def _window() -> tuple[date, date]:
    settings = get_settings()
    start = settings.STATS_WINDOW_START or date(settings.STATS_YEAR, 1, 1)
    end = settings.STATS_WINDOW_END or date(settings.STATS_YEAR, 12, 31)
    return start, end


def _months(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + end.month - start.month + 1


def upgrade() -> None:
    start, end = _window()
    months = _months(start, end)
    start_sql = f"DATE '{start.isoformat()}'"
    end_sql = f"DATE '{end.isoformat()}'"
    window = f"v.class_date BETWEEN {start_sql} AND {end_sql}"

    op.execute(
        f"""
        CREATE MATERIALIZED VIEW mv_member_stats AS
        WITH window_visits AS (
            SELECT v.*, (NOT v.cancelled AND NOT v.missed) AS attended
            FROM visits v
            WHERE {window}
        ),
        weekly AS (
            SELECT member_id, date_trunc('week', class_date) AS week_start, COUNT(*) AS classes
            FROM window_visits
            WHERE attended
            GROUP BY member_id, date_trunc('week', class_date)
        )
        SELECT
            w.member_id,
            COUNT(*) FILTER (WHERE w.attended) AS total_classes,
            COUNT(*) FILTER (WHERE w.attended)::float / {months} AS classes_per_month,
            COALESCE(
                ROUND(
                    100.0 * COUNT(*) FILTER (
                        WHERE w.attended AND w.class_time IS NOT NULL
                        AND EXTRACT(HOUR FROM w.class_time) < 8
                    )
                    / NULLIF(COUNT(*) FILTER (WHERE w.attended AND w.class_time IS NOT NULL), 0)
                ),
                0
            )::float AS early_bird_score,
            COUNT(*) FILTER (
                WHERE w.attended AND w.booked_at IS NOT NULL AND w.class_time IS NOT NULL
                AND (w.class_date + w.class_time) - w.booked_at < INTERVAL '2 hours'
            ) AS late_bookings,
            COUNT(*) FILTER (WHERE NOT w.attended) AS cancellations,
            COALESCE(
                (SELECT COUNT(*) FROM weekly wk
                 WHERE wk.member_id = w.member_id AND wk.classes >= 4),
                0
            ) AS perfect_weeks,
            {start_sql} AS window_start,
            {end_sql} AS window_end,
            now() AS computed_at
        FROM window_visits w
        GROUP BY w.member_id
        """
    )
    op.execute(
        "CREATE UNIQUE INDEX ix_mv_member_stats_member_id ON mv_member_stats (member_id)"
    )

    op.execute(
        f"""
        CREATE MATERIALIZED VIEW mv_global_stats AS
        WITH window_visits AS (
            SELECT v.*, (NOT v.cancelled AND NOT v.missed) AS attended
            FROM visits v
            WHERE {window}
        ),
        attended AS (
            SELECT * FROM window_visits WHERE attended
        ),
        member_early_bird AS (
            SELECT
                member_id,
                COALESCE(
                    ROUND(
                        100.0 * COUNT(*) FILTER (
                            WHERE class_time IS NOT NULL AND EXTRACT(HOUR FROM class_time) < 8
                        )
                        / NULLIF(COUNT(*) FILTER (WHERE class_time IS NOT NULL), 0)
                    ),
                    0
                ) AS score
            FROM attended
            GROUP BY member_id
        )
        SELECT
            (SELECT COUNT(DISTINCT member_id) FROM window_visits) AS total_members,
            (SELECT COUNT(*) FROM attended) AS total_classes,
            (SELECT to_char(class_time, 'HH12:MI AM') FROM attended
             WHERE class_time IS NOT NULL
             GROUP BY class_time ORDER BY COUNT(*) DESC, class_time LIMIT 1
            ) AS most_popular_time_slot,
            (SELECT to_char(class_date, 'FMDay') FROM attended
             GROUP BY to_char(class_date, 'FMDay'), EXTRACT(ISODOW FROM class_date)
             ORDER BY COUNT(*) DESC, EXTRACT(ISODOW FROM class_date) LIMIT 1
            ) AS most_popular_day,
            (SELECT coach_first_name || ' ' || coach_last_name FROM attended
             WHERE coach_first_name IS NOT NULL AND coach_last_name IS NOT NULL
             AND coach_first_name <> 'STAFF' AND coach_last_name <> 'STAFF'
             GROUP BY coach_first_name || ' ' || coach_last_name
             ORDER BY COUNT(*) DESC, coach_first_name || ' ' || coach_last_name LIMIT 1
            ) AS most_popular_coach,
            (SELECT ROUND(AVG(score)) FROM member_early_bird)::float AS avg_early_bird_score,
            {start_sql} AS window_start,
            {end_sql} AS window_end,
            now() AS computed_at
        """
    )


def downgrade() -> None:
    op.execute("DROP MATERIALIZED VIEW IF EXISTS mv_global_stats")
    op.execute("DROP INDEX IF EXISTS ix_mv_member_stats_member_id")
    op.execute("DROP MATERIALIZED VIEW IF EXISTS mv_member_stats")
