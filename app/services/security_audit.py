"""
Security audit checklist for a PostgreSQL target.

Every check is independent: a failing query degrades only that check to WARN.
All checks share one connection for the whole audit.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from app.schemas.connection import ConnectionDescriptor
from app.schemas.provider import SecuritySummary
from app.schemas.security import SecurityAuditResult, SecurityCheck
from app.services.target_db import target_connection

logger = logging.getLogger(__name__)

AUDIT_CONNECT_TIMEOUT_SEC = 15

# Tables whose name starts with any of these must have RLS enabled.
SENSITIVE_TABLE_MARKERS = ("users", "sessions", "payments", "accounts", "profiles", "auth")

PASSWORD_MIN_LENGTH = 16
PASSWORD_LONG_LENGTH = 32
PASSWORD_MIN_SCORE = 4
SYMBOL_PATTERN = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>\/?]")

MAX_CONNECTIONS_BEFORE_WARN = 50
MIN_RECOMMENDED_MAJOR_VERSION = 14
VERSION_PATTERN = re.compile(r"PostgreSQL (\d+)")

RLS_TABLES_SQL = """
SELECT tablename, rowsecurity AS rls_enabled
FROM pg_tables
WHERE schemaname = 'public'
ORDER BY tablename
"""

EXTENSIONS_SQL = """
SELECT extname FROM pg_extension
WHERE extname IN ('pgcrypto', 'uuid-ossp', 'pg_stat_statements')
"""

ROLE_SQL = """
SELECT rolsuper, rolcreaterole, rolcreatedb, rolreplication
FROM pg_roles
WHERE rolname = :username
"""

CONNECTIONS_SQL = """
SELECT count(*) AS total,
       count(*) FILTER (WHERE state = 'active') AS active,
       count(*) FILTER (WHERE state = 'idle') AS idle
FROM pg_stat_activity
WHERE datname = current_database()
"""


def is_sensitive_table(table_name: str) -> bool:
    """payments_log is sensitive; user_profiles is not (markers match at the start of the name)."""
    return table_name.lower().startswith(SENSITIVE_TABLE_MARKERS)


def check_ssl(connection: Connection) -> SecurityCheck:
    server_ssl = connection.exec_driver_sql("SHOW ssl").scalar()
    if server_ssl != "on":
        return SecurityCheck(
            name="SSL Connection",
            status="FAIL",
            details="SSL is disabled on the PostgreSQL server",
            recommendation="Enable SSL in the PostgreSQL configuration (postgresql.conf)",
        )
    row = connection.exec_driver_sql(
        "SELECT ssl, version FROM pg_stat_ssl WHERE pid = pg_backend_pid()"
    ).first()
    if row is not None and row.ssl:
        return SecurityCheck(
            name="SSL Connection",
            status="PASS",
            details=f"SSL active, version: {row.version or 'N/A'}",
        )
    return SecurityCheck(
        name="SSL Connection",
        status="WARN",
        details="SSL is available but the current connection is not encrypted",
        recommendation="Add ?sslmode=require to your connection URL",
    )


def classify_rls(tables: list[tuple[str, bool]]) -> list[SecurityCheck]:
    """FAIL for sensitive tables without RLS, WARN for the rest, plus a numeric summary."""
    if not tables:
        return [SecurityCheck(name="RLS Status", status="PASS", details="No tables in the public schema")]

    without_rls = [name for name, enabled in tables if not enabled]
    sensitive_without = [name for name in without_rls if is_sensitive_table(name)]
    other_without = [name for name in without_rls if name not in sensitive_without]

    checks: list[SecurityCheck] = []
    if sensitive_without:
        checks.append(
            SecurityCheck(
                name="RLS - Sensitive Tables",
                status="FAIL",
                details=f"Sensitive tables without RLS: {', '.join(sensitive_without)}",
                recommendation="Run ALTER TABLE <table> ENABLE ROW LEVEL SECURITY; then create policies",
            )
        )
    else:
        checks.append(
            SecurityCheck(
                name="RLS - Sensitive Tables",
                status="PASS",
                details="All sensitive tables have RLS enabled (or none exist)",
            )
        )
    if other_without:
        checks.append(
            SecurityCheck(
                name="RLS - Other Tables",
                status="WARN",
                details=f"Tables without RLS: {', '.join(other_without)}",
                recommendation="Consider enabling RLS on these tables if they hold user data",
            )
        )
    checks.append(
        SecurityCheck(
            name="RLS - Summary",
            status="PASS" if not without_rls else "WARN",
            details=f"{len(tables) - len(without_rls)}/{len(tables)} tables with RLS enabled",
        )
    )
    return checks


def check_rls(connection: Connection) -> list[SecurityCheck]:
    rows = connection.execute(text(RLS_TABLES_SQL)).all()
    return classify_rls([(row.tablename, bool(row.rls_enabled)) for row in rows])


def check_password_complexity(password: str) -> SecurityCheck:
    """Score 0-6: length>=16, length>=32, upper, lower, digit, symbol."""
    length = len(password)
    has_upper = re.search(r"[A-Z]", password) is not None
    has_lower = re.search(r"[a-z]", password) is not None
    has_digit = re.search(r"[0-9]", password) is not None
    has_symbol = SYMBOL_PATTERN.search(password) is not None
    score = sum(
        [
            length >= PASSWORD_MIN_LENGTH,
            length >= PASSWORD_LONG_LENGTH,
            has_upper,
            has_lower,
            has_digit,
            has_symbol,
        ]
    )
    if length < PASSWORD_MIN_LENGTH:
        return SecurityCheck(
            name="Password Complexity",
            status="FAIL",
            details=f"Password too short: {length} characters (recommended minimum: {PASSWORD_MIN_LENGTH})",
            recommendation="Generate a new password of 32+ characters including symbols",
        )
    if score < PASSWORD_MIN_SCORE:
        return SecurityCheck(
            name="Password Complexity",
            status="WARN",
            details=(
                f"Medium complexity ({score}/6): length={length}, upper={has_upper}, "
                f"lower={has_lower}, digits={has_digit}, symbols={has_symbol}"
            ),
            recommendation="Add special characters to strengthen the password",
        )
    return SecurityCheck(
        name="Password Complexity",
        status="PASS",
        details=f"Strong password: {length} characters, score {score}/6",
    )


def check_extensions(connection: Connection) -> SecurityCheck:
    extensions = [row[0] for row in connection.execute(text(EXTENSIONS_SQL))]
    has_pgcrypto = "pgcrypto" in extensions
    return SecurityCheck(
        name="Security Extensions",
        status="PASS" if has_pgcrypto else "WARN",
        details=f"Installed extensions: {', '.join(extensions) if extensions else 'none'}",
        recommendation=None if has_pgcrypto else "Install pgcrypto: CREATE EXTENSION IF NOT EXISTS pgcrypto;",
    )


def check_role(connection: Connection, username: str) -> SecurityCheck:
    row = connection.execute(text(ROLE_SQL), {"username": username}).first()
    if row is None:
        return SecurityCheck(name="User Permissions", status="WARN", details=f"Role {username} not found")
    if row.rolsuper:
        return SecurityCheck(
            name="User Permissions",
            status="WARN",
            details=f"Role {username} is SUPERUSER",
            recommendation="In production, connect with a role that has limited privileges",
        )
    return SecurityCheck(
        name="User Permissions",
        status="PASS",
        details=(
            f"Privileges of {username}: superuser={row.rolsuper}, "
            f"createrole={row.rolcreaterole}, createdb={row.rolcreatedb}"
        ),
    )


def check_connections(connection: Connection) -> SecurityCheck:
    row = connection.execute(text(CONNECTIONS_SQL)).one()
    total = int(row.total)
    too_many = total > MAX_CONNECTIONS_BEFORE_WARN
    return SecurityCheck(
        name="Active Connections",
        status="WARN" if too_many else "PASS",
        details=f"Connections: {total} total ({row.active} active, {row.idle} idle)",
        recommendation="High connection count; check your connection pooling" if too_many else None,
    )


def parse_major_version(version: str) -> int:
    match = VERSION_PATTERN.search(version or "")
    return int(match.group(1)) if match else 0


def check_version(connection: Connection) -> SecurityCheck:
    version = connection.exec_driver_sql("SELECT version()").scalar() or "Unknown"
    if parse_major_version(version) < MIN_RECOMMENDED_MAJOR_VERSION:
        return SecurityCheck(
            name="PostgreSQL Version",
            status="WARN",
            details=f"Version: {version}",
            recommendation="PostgreSQL 14+ recommended for the latest security features",
        )
    return SecurityCheck(name="PostgreSQL Version", status="PASS", details=f"Version: {version}")


def _guarded(name: str, check: Callable[[], SecurityCheck | list[SecurityCheck]]) -> list[SecurityCheck]:
    try:
        result = check()
    except SQLAlchemyError as e:
        logger.warning("Audit check failed", extra={"check": name})
        orig = getattr(e, "orig", None) or e
        return [SecurityCheck(name=name, status="WARN", details=f"Check failed: {str(orig).strip()}")]
    return result if isinstance(result, list) else [result]


def aggregate(checks: list[SecurityCheck]) -> SecurityAuditResult:
    critical = sum(1 for c in checks if c.status == "FAIL")
    warnings = sum(1 for c in checks if c.status == "WARN")
    if critical:
        overall = "CRITICAL"
    elif warnings:
        overall = "WARNINGS"
    else:
        overall = "SECURE"
    return SecurityAuditResult(
        timestamp=datetime.now(timezone.utc),
        checks=checks,
        overall_status=overall,
        critical_issues=critical,
        warnings=warnings,
    )


def run_checks(connection: Connection, conn: ConnectionDescriptor) -> list[SecurityCheck]:
    checks: list[SecurityCheck] = []
    checks += _guarded("SSL Connection", lambda: check_ssl(connection))
    checks += _guarded("RLS Status", lambda: check_rls(connection))
    checks.append(check_password_complexity(conn.password))
    checks += _guarded("Security Extensions", lambda: check_extensions(connection))
    checks += _guarded("User Permissions", lambda: check_role(connection, conn.user))
    checks += _guarded("Active Connections", lambda: check_connections(connection))
    checks += _guarded("PostgreSQL Version", lambda: check_version(connection))
    return checks


def run_security_audit(conn: ConnectionDescriptor) -> SecurityAuditResult:
    """
    Run every check over one connection and aggregate.

    Raises TargetDatabaseError only when the connection itself cannot be opened.
    """
    with target_connection(conn, AUDIT_CONNECT_TIMEOUT_SEC, sslmode="prefer") as connection:
        checks = run_checks(connection, conn)
    result = aggregate(checks)
    logger.info(
        "Security audit finished",
        extra={
            "host": conn.host,
            "database": conn.database,
            "overall_status": result.overall_status,
            "critical_issues": result.critical_issues,
            "warnings": result.warnings,
        },
    )
    return result


def security_summary(resource: dict[str, Any]) -> SecuritySummary:
    """Exposure and password strength of a provider database record."""
    password = resource.get("postgres_password") or ""
    return SecuritySummary(
        is_public=bool(resource.get("is_public")),
        public_port=resource.get("public_port") or None,
        password_length=len(password),
        password_strong=len(password) >= PASSWORD_MIN_LENGTH,
    )
