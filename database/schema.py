"""
Database schema definitions.
Table creation, indexes, and the booking guard triggers.
"""


def drop_tables(db):
    """Drop all existing tables."""
    # Disable foreign key constraints before dropping
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'office_bookings',
        'offices',
        'reservation_status_history',
        'reservations',
        'fixed_assignments',
        'room_access',
        'room_cells',
        'rooms',
        'user_sessions',
        'users'
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    # Re-enable foreign key constraints
    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables."""

    # 1. Users & sessions
    db.execute('''
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL,
            full_name TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('admin', 'user')),
            active INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE user_sessions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            session_token TEXT UNIQUE NOT NULL,
            expires_at TEXT NOT NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 2. Rooms, cells, access
    db.execute('''
        CREATE TABLE rooms (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT,
            grid_width INTEGER NOT NULL CHECK (grid_width > 0 AND grid_width <= 50),
            grid_height INTEGER NOT NULL CHECK (grid_height > 0 AND grid_height <= 50),
            created_by INTEGER REFERENCES users(id),
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE room_cells (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            room_id INTEGER NOT NULL REFERENCES rooms(id) ON DELETE CASCADE,
            x INTEGER NOT NULL,
            y INTEGER NOT NULL,
            type TEXT NOT NULL DEFAULT 'empty'
                CHECK (type IN ('empty', 'desk', 'premium_desk', 'office', 'entrance', 'wall')),
            label TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(room_id, x, y)
        )
    ''')

    db.execute('''
        CREATE TABLE room_access (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            room_id INTEGER NOT NULL REFERENCES rooms(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            role TEXT NOT NULL CHECK (role IN ('admin', 'member')),
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(room_id, user_id)
        )
    ''')

    # 3. Bookings
    db.execute('''
        CREATE TABLE reservations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            room_id INTEGER NOT NULL REFERENCES rooms(id) ON DELETE CASCADE,
            cell_id INTEGER NOT NULL REFERENCES room_cells(id) ON DELETE CASCADE,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            reservation_type TEXT NOT NULL DEFAULT 'day'
                CHECK (reservation_type IN ('day', 'half_day')),
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'approved', 'rejected', 'cancelled')),
            date_start TEXT NOT NULL,
            date_end TEXT NOT NULL,
            time_segment TEXT NOT NULL DEFAULT 'FULL'
                CHECK (time_segment IN ('AM', 'PM', 'FULL')),
            approved_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
            approved_at TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            CHECK (date_end >= date_start)
        )
    ''')

    db.execute('''
        CREATE TABLE reservation_status_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            reservation_id INTEGER NOT NULL REFERENCES reservations(id) ON DELETE CASCADE,
            status TEXT NOT NULL,
            changed_by INTEGER REFERENCES users(id) ON DELETE SET NULL,
            notes TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE fixed_assignments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            cell_id INTEGER NOT NULL REFERENCES room_cells(id) ON DELETE CASCADE,
            room_id INTEGER NOT NULL REFERENCES rooms(id) ON DELETE CASCADE,
            assigned_to INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            date_start TEXT NOT NULL,
            date_end TEXT NOT NULL,
            created_by INTEGER NOT NULL REFERENCES users(id),
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            CHECK (date_end >= date_start)
        )
    ''')

    # 4. Offices (time-slot bookings)
    db.execute('''
        CREATE TABLE offices (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            location TEXT NOT NULL,
            is_shared INTEGER DEFAULT 0,
            created_by INTEGER NOT NULL REFERENCES users(id),
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE office_bookings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            office_id INTEGER NOT NULL REFERENCES offices(id) ON DELETE CASCADE,
            user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            is_admin_block INTEGER DEFAULT 0,
            created_by INTEGER NOT NULL REFERENCES users(id),
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            CHECK (end_time > start_time),
            CHECK ((is_admin_block = 1 AND user_id IS NULL)
                   OR (is_admin_block = 0 AND user_id IS NOT NULL))
        )
    ''')


def create_indexes(db):
    """Create indexes for the range-overlap lookups."""
    indexes = [
        'CREATE INDEX idx_reservations_cell_dates ON reservations(cell_id, date_start, date_end)',
        'CREATE INDEX idx_reservations_user_dates ON reservations(user_id, date_start, date_end)',
        'CREATE INDEX idx_reservations_status ON reservations(status)',
        'CREATE INDEX idx_reservations_room ON reservations(room_id)',
        'CREATE INDEX idx_fixed_assignments_cell_dates ON fixed_assignments(cell_id, date_start, date_end)',
        'CREATE INDEX idx_fixed_assignments_assigned_to ON fixed_assignments(assigned_to)',
        'CREATE INDEX idx_room_cells_room ON room_cells(room_id)',
        'CREATE INDEX idx_room_access_user ON room_access(user_id)',
        'CREATE INDEX idx_user_sessions_token ON user_sessions(session_token)',
        'CREATE INDEX idx_office_bookings_office_times ON office_bookings(office_id, start_time, end_time)',
        'CREATE INDEX idx_status_history_reservation ON reservation_status_history(reservation_id)',
    ]
    for statement in indexes:
        db.execute(statement)


# Conditions shared by the triggers below. NEW refers to the row being written.
_SLOT_TAKEN = '''
    EXISTS (
        SELECT 1 FROM reservations r
        WHERE r.cell_id = NEW.cell_id
          AND r.status = 'approved'
          AND r.id IS NOT NEW.id
          AND r.date_start <= NEW.date_end AND r.date_end >= NEW.date_start
          AND (r.time_segment = 'FULL' OR NEW.time_segment = 'FULL'
               OR r.time_segment = NEW.time_segment)
    )
'''

_CELL_ASSIGNED_TO_OTHER = '''
    EXISTS (
        SELECT 1 FROM fixed_assignments fa
        WHERE fa.cell_id = NEW.cell_id
          AND fa.assigned_to != NEW.user_id
          AND fa.date_start <= NEW.date_end AND fa.date_end >= NEW.date_start
    )
'''

_USER_ALREADY_BOOKED = '''
    EXISTS (
        SELECT 1 FROM reservations r
        WHERE r.user_id = NEW.user_id
          AND r.status IN ('pending', 'approved')
          AND r.id IS NOT NEW.id
          AND r.date_start <= NEW.date_end AND r.date_end >= NEW.date_start
    )
    OR EXISTS (
        SELECT 1 FROM fixed_assignments fa
        WHERE fa.assigned_to = NEW.user_id
          AND fa.date_start <= NEW.date_end AND fa.date_end >= NEW.date_start
    )
'''


def create_triggers(db):
    """
    Create the storage-level booking guards.

    The engine checks every rule before writing; these triggers reject a
    second concurrent writer that slipped past those checks. The RAISE
    messages are mapped back to engine errors by utils.errors.map_integrity_error.
    """
    db.execute(f'''
        CREATE TRIGGER trg_reservations_insert_guard
        BEFORE INSERT ON reservations
        WHEN NEW.status IN ('pending', 'approved')
        BEGIN
            SELECT RAISE(ABORT, 'fixed_assignment_conflict')
            WHERE {_CELL_ASSIGNED_TO_OTHER};
            SELECT RAISE(ABORT, 'slot_conflict')
            WHERE NEW.status = 'approved' AND {_SLOT_TAKEN};
            SELECT RAISE(ABORT, 'duplicate_booking')
            WHERE {_USER_ALREADY_BOOKED};
        END
    ''')

    db.execute(f'''
        CREATE TRIGGER trg_reservations_approve_guard
        BEFORE UPDATE OF status ON reservations
        WHEN NEW.status = 'approved' AND OLD.status != 'approved'
        BEGIN
            SELECT RAISE(ABORT, 'fixed_assignment_conflict')
            WHERE {_CELL_ASSIGNED_TO_OTHER};
            SELECT RAISE(ABORT, 'slot_conflict')
            WHERE {_SLOT_TAKEN};
        END
    ''')

    db.execute('''
        CREATE TRIGGER trg_fixed_assignments_insert_guard
        BEFORE INSERT ON fixed_assignments
        BEGIN
            SELECT RAISE(ABORT, 'fixed_assignment_conflict')
            WHERE EXISTS (
                SELECT 1 FROM fixed_assignments fa
                WHERE fa.cell_id = NEW.cell_id
                  AND fa.date_start <= NEW.date_end AND fa.date_end >= NEW.date_start
            );
            SELECT RAISE(ABORT, 'slot_conflict')
            WHERE EXISTS (
                SELECT 1 FROM reservations r
                WHERE r.cell_id = NEW.cell_id
                  AND r.status = 'approved'
                  AND r.user_id != NEW.assigned_to
                  AND r.date_start <= NEW.date_end AND r.date_end >= NEW.date_start
            );
            SELECT RAISE(ABORT, 'duplicate_booking')
            WHERE EXISTS (
                SELECT 1 FROM reservations r
                WHERE r.user_id = NEW.assigned_to
                  AND r.status IN ('pending', 'approved')
                  AND r.date_start <= NEW.date_end AND r.date_end >= NEW.date_start
            ) OR EXISTS (
                SELECT 1 FROM fixed_assignments fa
                WHERE fa.assigned_to = NEW.assigned_to
                  AND fa.date_start <= NEW.date_end AND fa.date_end >= NEW.date_start
            );
        END
    ''')

    db.execute('''
        CREATE TRIGGER trg_fixed_assignments_update_guard
        BEFORE UPDATE OF date_start, date_end ON fixed_assignments
        BEGIN
            SELECT RAISE(ABORT, 'fixed_assignment_conflict')
            WHERE EXISTS (
                SELECT 1 FROM fixed_assignments fa
                WHERE fa.id != NEW.id
                  AND fa.cell_id = NEW.cell_id
                  AND fa.date_start <= NEW.date_end AND fa.date_end >= NEW.date_start
            );
            SELECT RAISE(ABORT, 'duplicate_booking')
            WHERE EXISTS (
                SELECT 1 FROM fixed_assignments fa
                WHERE fa.id != NEW.id
                  AND fa.assigned_to = NEW.assigned_to
                  AND fa.date_start <= NEW.date_end AND fa.date_end >= NEW.date_start
            );
        END
    ''')
