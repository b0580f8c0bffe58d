from __future__ import annotations

from src.sports_club.sports_club.database.bootstrap import iter_sql_statements


def test_iter_sql_statements_skips_comments_and_blank_lines():
    sql = """
    -- programs
    INSERT INTO programs (name) VALUES ('Swimming');

    INSERT INTO programs (name) VALUES ('Badminton; doubles');
    """

    statements = list(iter_sql_statements(sql))

    assert statements == [
        "INSERT INTO programs (name) VALUES ('Swimming')",
        "INSERT INTO programs (name) VALUES ('Badminton; doubles')",
    ]
