from clypsync.utils.export import Export, export_pastes
from clypsync.utils.room_state import RoomStateFile

__all__ = [
    'Export',
    'RoomStateFile',
    'export_pastes',
]
