"""
RemoteNode и NodeSnapshot - узлы дерева MEGA

Снимок отражает состояние сервера на момент запроса и быстро устаревает,
поэтому каждая операция получает свежий снимок через StorageSession.fetch_snapshot()
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional


class NodeKind:
    """Типы узлов MEGA (поле 't' в ответе API)"""
    FILE = 0
    FOLDER = 1
    ROOT = 2
    INBOX = 3
    TRASH = 4


@dataclass(frozen=True)
class RemoteNode:
    """
    Узел удалённого хранилища

    Attributes:
        handle: Непрозрачный стабильный идентификатор узла
        name: Отображаемое имя
        kind: Тип узла (NodeKind)
        parent_handle: handle родителя или None для корневых узлов
        size: Размер файла в байтах (0 для папок)
    """
    handle: str
    name: str
    kind: int = NodeKind.FILE
    parent_handle: Optional[str] = None
    size: int = 0

    def is_folder(self) -> bool:
        return self.kind != NodeKind.FILE


@dataclass(frozen=True)
class NodeSnapshot:
    """Список всех узлов аккаунта на момент запроса"""
    nodes: List[RemoteNode] = field(default_factory=list)

    def get_node_by_handle(self, handle: str) -> Optional[RemoteNode]:
        for node in self.nodes:
            if node.handle == handle:
                return node
        return None

    def find_by_names(self, names: Iterable[str]) -> List[RemoteNode]:
        """
        Все узлы с именем из names

        Порядок - как в снимке, а не как в names.
        Если два узла называются одинаково, вернутся оба.
        """
        wanted = set(names)
        return [node for node in self.nodes if node.name in wanted]
