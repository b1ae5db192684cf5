"""Demo schema seeded into a newly created store."""

from __future__ import annotations

from kvsql.domain.entities import Column, Table
from kvsql.domain.services import InitializeStoreMigration

DEMO_TABLES: tuple[Table, ...] = (
    Table(
        name="employees",
        columns=(
            Column("employee_id", "INTEGER"),
            Column("first_name", "TEXT"),
            Column("last_name", "TEXT"),
            Column("email", "TEXT"),
            Column("hire_date", "DATE"),
            Column("department_id", "INTEGER"),
            Column("salary", "REAL"),
        ),
    ),
    Table(
        name="departments",
        columns=(
            Column("department_id", "INTEGER"),
            Column("department_name", "TEXT"),
        ),
    ),
    Table(
        name="projects",
        columns=(
            Column("project_id", "INTEGER"),
            Column("project_name", "TEXT"),
            Column("start_date", "DATE"),
            Column("end_date", "DATE"),
        ),
    ),
    Table(
        name="project_assignments",
        columns=(
            Column("assignment_id", "INTEGER"),
            Column("project_id", "INTEGER"),
            Column("employee_id", "INTEGER"),
        ),
    ),
)

DEMO_ROWS: dict[str, list[dict]] = {
    "employees": [
        {
            "employee_id": 101,
            "first_name": "John",
            "last_name": "Doe",
            "email": "john.doe@example.com",
            "hire_date": "2022-01-15",
            "department_id": 2,
            "salary": 75000,
        },
        {
            "employee_id": 102,
            "first_name": "Jane",
            "last_name": "Smith",
            "email": "jane.smith@example.com",
            "hire_date": "2021-03-20",
            "department_id": 1,
            "salary": 82000,
        },
        {
            "employee_id": 103,
            "first_name": "Peter",
            "last_name": "Jones",
            "email": "peter.jones@example.com",
            "hire_date": "2022-05-10",
            "department_id": 2,
            "salary": 68000,
        },
    ],
    "departments": [
        {"department_id": 1, "department_name": "Engineering"},
        {"department_id": 2, "department_name": "Marketing"},
    ],
}


def bootstrap_migration(seed_demo_data: bool = True) -> InitializeStoreMigration:
    """Migration run when the store is first created."""
    if not seed_demo_data:
        return InitializeStoreMigration()
    return InitializeStoreMigration(tables=DEMO_TABLES, rows=DEMO_ROWS)
