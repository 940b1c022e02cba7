"""Per-framework dependency discoverers and the registry the dispatcher uses."""

from ..models import Framework
from .base import Discoverer, DiscovererFactory, RegistryError
from .cargo import CargoDiscoverer
from .composer import ComposerDiscoverer
from .dart import DartDiscoverer
from .deno import DenoDiscoverer
from .go import GoDiscoverer
from .gradle import GradleDiscoverer
from .haskell import HaskellDiscoverer
from .jsr import JsrDiscoverer
from .maven import MavenDiscoverer
from .node import NodeDiscoverer
from .python import PythonDiscoverer
from .renv import RenvDiscoverer
from .ruby import RubyDiscoverer

# Every Framework has exactly one factory; each receives the shared HTTP client
DISCOVERERS: dict[Framework, DiscovererFactory] = {
    Framework.NODE: lambda client: NodeDiscoverer(),
    Framework.DENO: lambda client: DenoDiscoverer(),
    Framework.JSR: JsrDiscoverer,
    Framework.CARGO: lambda client: CargoDiscoverer(),
    Framework.GO: lambda client: GoDiscoverer(),
    Framework.DART: DartDiscoverer,
    Framework.COMPOSER: lambda client: ComposerDiscoverer(),
    Framework.RUBY: RubyDiscoverer,
    Framework.PYTHON: PythonDiscoverer,
    Framework.GRADLE: lambda client: GradleDiscoverer(),
    Framework.MAVEN: MavenDiscoverer,
    Framework.RENV: lambda client: RenvDiscoverer(),
    Framework.HASKELL: HaskellDiscoverer,
}

__all__ = [
    "DISCOVERERS",
    "Discoverer",
    "DiscovererFactory",
    "RegistryError",
    "CargoDiscoverer",
    "ComposerDiscoverer",
    "DartDiscoverer",
    "DenoDiscoverer",
    "GoDiscoverer",
    "GradleDiscoverer",
    "HaskellDiscoverer",
    "JsrDiscoverer",
    "MavenDiscoverer",
    "NodeDiscoverer",
    "PythonDiscoverer",
    "RenvDiscoverer",
    "RubyDiscoverer",
]
