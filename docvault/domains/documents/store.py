import uuid
from typing import Callable, List, Optional, Set

from docvault.domains.documents.entities import Document, DocumentCategory

DocumentMutation = Callable[[Document], None]


class DocumentStore:
    """Контракт хранилища документов.

    `update` и `delete` атомарны относительно версии записи: функция
    `mutate`/`check` применяется к актуальному состоянию документа, и
    изменение фиксируется только если запись не изменилась параллельно.
    Исключение из `mutate`/`check` отменяет операцию и пробрасывается.
    """

    async def create(self, document: Document) -> Document:
        raise NotImplementedError("Subclasses must implement create")

    async def get_by_id(self, document_id: uuid.UUID) -> Optional[Document]:
        raise NotImplementedError("Subclasses must implement get_by_id")

    async def list(
        self,
        archived: bool,
        visible_to: Optional[uuid.UUID] = None,
        category: Optional[DocumentCategory] = None
    ) -> List[Document]:
        """Документы в заданном состоянии; visible_to ограничивает выборку
        документами, которые пользователь загрузил или которыми с ним поделились"""
        raise NotImplementedError("Subclasses must implement list")

    async def list_visible_ids(self, user_id: uuid.UUID) -> Set[uuid.UUID]:
        raise NotImplementedError("Subclasses must implement list_visible_ids")

    async def count(self, archived: bool, visible_to: Optional[uuid.UUID] = None) -> int:
        raise NotImplementedError("Subclasses must implement count")

    async def update(self, document_id: uuid.UUID, mutate: DocumentMutation) -> Document:
        """Атомарное изменение, NotFound если документа нет"""
        raise NotImplementedError("Subclasses must implement update")

    async def delete(self, document_id: uuid.UUID, check: DocumentMutation) -> Document:
        """Атомарное удаление после проверки, возвращает удаленный документ"""
        raise NotImplementedError("Subclasses must implement delete")
