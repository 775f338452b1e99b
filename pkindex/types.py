from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, order=True)
class SourceRef:
    """
    A buildable source package at one specific version.
    """

    package: str
    version: str

    def __str__(self):
        return f"{self.package}\t{self.version}"


@dataclass(frozen=True)
class DSCRef:
    """
    Where to fetch the .dsc of a SourceRef, and the total size of the dsc
    plus every file it references.
    """

    url: str
    size: int

    def __str__(self):
        return f"{self.url}\t{self.size}"


# Lookup key (binary name, source name, src:<source>, bin:<binary>) to source
Index = dict[str, SourceRef]

URIs = dict[SourceRef, DSCRef]

TargetKind = Literal["Packages", "Sources"]

CompletionFamily = Literal["bin", "src", "both"]
