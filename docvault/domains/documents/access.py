"""Правила доступа к документам.

Единственное место, где решается, может ли пользователь выполнить
операцию над документом. Функции чистые и не обращаются к хранилищам.
"""
import enum
from typing import Optional

from docvault.core.errors import AccessDenied
from docvault.domains.documents.entities import Document
from docvault.domains.identity.entities import Role, User


class Operation(str, enum.Enum):
    UPLOAD = "upload"
    VIEW = "view"
    DOWNLOAD = "download"
    ARCHIVE = "archive"
    RESTORE = "restore"
    DELETE = "delete"
    SHARE = "share"


READ_OPERATIONS = frozenset({Operation.VIEW, Operation.DOWNLOAD})
OWNER_OPERATIONS = frozenset({Operation.ARCHIVE, Operation.RESTORE, Operation.DELETE, Operation.SHARE})
UPLOAD_ROLES = frozenset({Role.EDITOR, Role.ADMIN})


def is_allowed(user: User, operation: Operation, document: Optional[Document] = None) -> bool:
    """Разрешена ли операция пользователю"""
    operation = Operation(operation)

    # неактивный пользователь не может ничего, независимо от роли
    if not user.is_active:
        return False

    if user.is_admin:
        return True

    if operation == Operation.UPLOAD:
        return user.role in UPLOAD_ROLES

    if document is None:
        return False

    if operation in READ_OPERATIONS:
        return document.has_access(user.id)

    if operation in OWNER_OPERATIONS:
        return document.is_owner(user.id)

    return False


def ensure_allowed(user: User, operation: Operation, document: Optional[Document] = None) -> None:
    """Проверка прав, AccessDenied при отказе"""
    if not is_allowed(user, operation, document):
        operation = Operation(operation)
        if document is None:
            raise AccessDenied(f"User is not allowed to {operation.value} documents")
        raise AccessDenied(f"User is not allowed to {operation.value} this document")


def can_view(user: User, document: Document) -> bool:
    return is_allowed(user, Operation.VIEW, document)


def can_modify(user: User, document: Document) -> bool:
    """Архивирование, восстановление, удаление и предоставление доступа"""
    return is_allowed(user, Operation.ARCHIVE, document)
