from docvault.models.base import Base
from docvault.models.folder import Folder
from docvault.models.file import File

__all__ = [
    "Base",
    "Folder",
    "File",
]
