from docvault.repositories.base import BaseRepository
from docvault.repositories.file_repo import FileRepository

__all__ = [
    "BaseRepository",
    "FileRepository",
]
