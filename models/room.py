"""
Room and cell data access functions.
Rooms own a grid of cells; desk cells are the unit of booking.
"""

from database import get_db

CELL_TYPES = ('empty', 'desk', 'premium_desk', 'office', 'entrance', 'wall')
BOOKABLE_CELL_TYPES = ('desk', 'premium_desk')


# =============================================================================
# ROOMS
# =============================================================================

def create_room(name: str, grid_width: int, grid_height: int,
                created_by: int = None, description: str = None) -> int:
    """
    Create a new room.

    Args:
        name: Room name
        grid_width: Grid columns (1-50)
        grid_height: Grid rows (1-50)
        created_by: Creating user ID
        description: Optional description

    Returns:
        int: New room ID

    Raises:
        ValueError: If grid dimensions are out of range
    """
    if not (0 < grid_width <= 50 and 0 < grid_height <= 50):
        raise ValueError('Grid dimensions must be between 1 and 50')

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO rooms (name, description, grid_width, grid_height, created_by)
        VALUES (?, ?, ?, ?, ?)
    ''', (name, description, grid_width, grid_height, created_by))
    db.commit()
    return cursor.lastrowid


def get_room_by_id(room_id: int) -> dict:
    """Get room by ID, or None."""
    db = get_db()
    row = db.execute('SELECT * FROM rooms WHERE id = ?', (room_id,)).fetchone()
    return dict(row) if row else None


# =============================================================================
# CELLS
# =============================================================================

def create_cell(room_id: int, x: int, y: int, cell_type: str = 'desk', label: str = None) -> int:
    """
    Create a cell inside a room grid.

    Args:
        room_id: Room ID
        x: Column (0-based)
        y: Row (0-based)
        cell_type: One of CELL_TYPES
        label: Optional label shown on the desk

    Returns:
        int: New cell ID

    Raises:
        ValueError: If the room is missing, the type is unknown or the
            coordinate is outside the grid
    """
    if cell_type not in CELL_TYPES:
        raise ValueError(f'Unknown cell type: {cell_type}')

    room = get_room_by_id(room_id)
    if not room:
        raise ValueError(f'Room {room_id} not found')
    if not (0 <= x < room['grid_width'] and 0 <= y < room['grid_height']):
        raise ValueError(f'Cell ({x}, {y}) is outside the {room["grid_width"]}x{room["grid_height"]} grid')

    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO room_cells (room_id, x, y, type, label)
        VALUES (?, ?, ?, ?, ?)
    ''', (room_id, x, y, cell_type, label))
    db.commit()
    return cursor.lastrowid


def get_cell_by_id(cell_id: int) -> dict:
    """Get cell by ID, or None."""
    db = get_db()
    row = db.execute('SELECT * FROM room_cells WHERE id = ?', (cell_id,)).fetchone()
    return dict(row) if row else None


def get_cells_by_room(room_id: int, bookable_only: bool = False) -> list:
    """
    Get the cells of a room.

    Args:
        room_id: Room ID
        bookable_only: Only desk-type cells

    Returns:
        list: Cells ordered by row, then column
    """
    db = get_db()
    query = 'SELECT * FROM room_cells WHERE room_id = ?'
    params = [room_id]

    if bookable_only:
        placeholders = ','.join('?' * len(BOOKABLE_CELL_TYPES))
        query += f' AND type IN ({placeholders})'
        params.extend(BOOKABLE_CELL_TYPES)

    query += ' ORDER BY y, x'
    return [dict(row) for row in db.execute(query, params).fetchall()]
