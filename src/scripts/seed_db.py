#!/usr/bin/env python3
"""
Seed departments, units and users for local development.

Departments and units are fixed so combo references like "ENG:Backend" work
out of the box; users are generated with Faker.
"""

import argparse
import sys
from pathlib import Path

from faker import Faker

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH
from core.database import create_schema, get_connection
from core.identifiers import new_record_id

DEPARTMENTS = {
    "ENG": ("Engineering", ["Backend", "Frontend", "Platform"]),
    "HR": ("Human Resources", ["Recruitment", "Payroll"]),
    "FIN": ("Finance", ["Accounts", "Payroll"]),
    "OPS": ("Operations", ["Facilities", "Support"]),
}

ROLES = ["ADMIN", "MANAGER", "EMPLOYEE", "EMPLOYEE", "EMPLOYEE"]


def seed(db_path: Path, users_per_department: int, seed_value: int | None = None) -> None:
    fake = Faker()
    if seed_value is not None:
        Faker.seed(seed_value)

    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    try:
        create_schema(conn)
        with conn:
            for code, (name, units) in DEPARTMENTS.items():
                existing = conn.execute(
                    "SELECT id FROM departments WHERE code = ?", (code,)
                ).fetchone()
                if existing:
                    print(f"  Skipping {code}: already seeded")
                    continue

                department_id = new_record_id()
                conn.execute(
                    "INSERT INTO departments (id, code, name) VALUES (?, ?, ?)",
                    (department_id, code, name),
                )
                conn.executemany(
                    "INSERT INTO department_units (id, department_id, name) VALUES (?, ?, ?)",
                    [(new_record_id(), department_id, unit) for unit in units],
                )

                for _ in range(users_per_department):
                    conn.execute(
                        """
                        INSERT OR IGNORE INTO users (id, email, full_name, role, department_id)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (
                            new_record_id(),
                            fake.unique.company_email(),
                            fake.name(),
                            fake.random_element(ROLES),
                            department_id,
                        ),
                    )
                print(f"  Seeded {code} ({name}): {len(units)} units, {users_per_department} users")
    finally:
        conn.close()

    print(f"Seed complete: {db_path}")


def main():
    parser = argparse.ArgumentParser(description="Seed the events database")
    parser.add_argument("--db", type=Path, default=DB_PATH, help="Database path")
    parser.add_argument("--users", type=int, default=5, help="Users per department")
    parser.add_argument("--seed", type=int, default=None, help="Faker seed")
    args = parser.parse_args()
    seed(args.db, args.users, args.seed)


if __name__ == "__main__":
    main()
