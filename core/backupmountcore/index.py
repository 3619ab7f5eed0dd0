import logging
from collections.abc import Iterator
from typing import Optional

from .entries import DirectoryNode, VirtualNode
from .tree import iterate_tree

logger = logging.getLogger(__name__)


class InodeIndex:
    """Maps each inode of a finished tree to its node. The tree must not be modified afterwards."""

    def __init__(self, root: DirectoryNode) -> None:
        self.root = root
        self.nodes: dict[int, VirtualNode] = {}
        for node in iterate_tree(root):
            if node.inode in self.nodes:
                raise ValueError(f"Inode {node.inode} is assigned to more than one node!")
            self.nodes[node.inode] = node
        logger.debug("Indexed %d inodes.", len(self.nodes))

    def get(self, inode: int) -> Optional[VirtualNode]:
        return self.nodes.get(inode)

    def __contains__(self, inode: int) -> bool:
        return inode in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[int]:
        return iter(self.nodes)
