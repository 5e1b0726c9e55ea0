"""
Database seed data.
Initial data population for fresh database installations.
"""


def seed_database(db):
    """Insert initial seed data."""

    # 1. Default global administrator (sessions are issued externally)
    db.execute('''
        INSERT INTO users (username, full_name, role)
        VALUES ('admin', 'System Administrator', 'admin')
    ''')
