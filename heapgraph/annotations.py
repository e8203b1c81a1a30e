"""Annotations of special graph nodes, used for labelling and dot rendering."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, Union

from heapgraph.nodes import (
    ChunkHeaderNode,
    FooterNode,
    Node,
    PointerNode,
    ValueNode,
)


class AnnotationSubclass(enum.IntFlag):
    """Bit of each annotation kind in the embedding class of an annotation set."""

    KEY = 0x1
    SSH_STRUCT = 0x2
    SESSION_STATE = 0x4

    @staticmethod
    def is_key(class_value: int) -> bool:
        return bool(class_value & AnnotationSubclass.KEY)

    @staticmethod
    def is_ssh_struct(class_value: int) -> bool:
        return bool(class_value & AnnotationSubclass.SSH_STRUCT)

    @staticmethod
    def is_session_state(class_value: int) -> bool:
        return bool(class_value & AnnotationSubclass.SESSION_STATE)


@dataclass(frozen=True)
class KeyDataJSON:
    """Key description as read from a JSON annotation file."""

    name: str
    key: bytes
    addr: int
    len: int
    real_len: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", bytes(self.key))


@dataclass(frozen=True, repr=False)
class KeyAnnotation:
    """Annotation of a node holding the start of a key."""

    addr: int
    key: bytes
    key_data: KeyDataJSON = field(compare=True)

    subclass = AnnotationSubclass.KEY

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", bytes(self.key))

    def __repr__(self) -> str:
        return f"KN({self.addr:#x})"


@dataclass(frozen=True, repr=False)
class SessionStateNodeAnnotation:
    """Annotation of a node holding the session state structure."""

    addr: int

    subclass = AnnotationSubclass.SESSION_STATE

    def __repr__(self) -> str:
        return f"SSN({self.addr:#x})"


@dataclass(frozen=True, repr=False)
class SshStructNodeAnnotation:
    """Annotation of a node holding the SSH structure."""

    addr: int

    subclass = AnnotationSubclass.SSH_STRUCT

    def __repr__(self) -> str:
        return f"SSHN({self.addr:#x})"


NodeAnnotation = Union[KeyAnnotation, SessionStateNodeAnnotation, SshStructNodeAnnotation]

_NAMES_AND_COLORS = {
    (False, True, False): ("Ssh", "red"),
    (False, False, True): ("SST", "blue"),
    (False, True, True): ("Ssh_SST", "purple"),
    (True, False, True): ("Key_SST", "cyan"),
}


class AnnotationSet:
    """The annotations attached to a single node address."""

    def __init__(self, annotation: NodeAnnotation) -> None:
        self._annotations: set[NodeAnnotation] = {annotation}

    def __iter__(self) -> Iterator[NodeAnnotation]:
        return iter(self._annotations)

    def __len__(self) -> int:
        return len(self._annotations)

    def __contains__(self, annotation: object) -> bool:
        return annotation in self._annotations

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AnnotationSet):
            return NotImplemented
        return self._annotations == other._annotations

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        items = ", ".join(sorted(repr(a) for a in self._annotations))
        return f"AnnotationSet({{{items}}})"

    def annotation_set_embedding(self) -> int:
        """Embedding class: the sum of the subclass bits of every annotation."""
        return sum(int(annotation.subclass) for annotation in self._annotations)

    def add_annotation(self, annotation: NodeAnnotation) -> None:
        """Add an annotation; it must refer to the same address as the others."""
        if self._annotations and self.address() != annotation.addr:
            raise ValueError(
                f"annotation address {annotation.addr:#x} differs from "
                f"set address {self.address():#x}"
            )
        self._annotations.add(annotation)

    def is_key_subclass(self) -> bool:
        return AnnotationSubclass.is_key(self.annotation_set_embedding())

    def is_ssh_struct_subclass(self) -> bool:
        return AnnotationSubclass.is_ssh_struct(self.annotation_set_embedding())

    def is_session_state_subclass(self) -> bool:
        return AnnotationSubclass.is_session_state(self.annotation_set_embedding())

    def _subclass_flags(self) -> tuple[bool, bool, bool]:
        class_value = self.annotation_set_embedding()
        return (
            AnnotationSubclass.is_key(class_value),
            AnnotationSubclass.is_ssh_struct(class_value),
            AnnotationSubclass.is_session_state(class_value),
        )

    def name(self) -> str:
        """Display name of the annotated node."""
        flags = self._subclass_flags()
        if flags == (True, False, False):
            for annotation in self._annotations:
                if isinstance(annotation, KeyAnnotation):
                    return annotation.key_data.name
            raise ValueError("No key annotation found in the set!")
        try:
            return _NAMES_AND_COLORS[flags][0]
        except KeyError:
            raise ValueError(
                "Unhandled annotation class combination of subclasses!"
            ) from None

    def color(self) -> str:
        """Dot fill color of the annotated node."""
        flags = self._subclass_flags()
        if flags == (True, False, False):
            return "green"
        try:
            return _NAMES_AND_COLORS[flags][1]
        except KeyError:
            raise ValueError(
                "Unhandled annotation class combination of subclasses!"
            ) from None

    def annotate_dot_attributes(self) -> str:
        """Dot attributes for the annotated node."""
        return f'label="{self.name()}" color="{self.color()}" style=filled'

    def address(self) -> int:
        """Address of the annotated node."""
        return next(iter(self._annotations)).addr


def default_dot_attributes(node: Node) -> str:
    """Dot attributes for a node without annotation."""
    if isinstance(node, ChunkHeaderNode):
        return 'label="CHN" color="black"'
    if isinstance(node, ValueNode):
        return 'label="VN" color="grey"'
    if isinstance(node, PointerNode):
        return 'label="PN" color="orange"'
    if isinstance(node, FooterNode):
        return 'label="FN" color="purple"'
    raise TypeError(f"unsupported node type: {type(node).__name__}")