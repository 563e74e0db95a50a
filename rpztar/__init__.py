"""rpztar - safe extraction of RPZ containers.

Unpacks the ``DATA`` part of an RPZ container (a tar stream, optionally gzip
compressed, optionally redirecting its data to a nested ``DATA.tar.gz``)
into a destination directory:
* Archive paths are checked for traversal and confined to the destination
* An optional allow-list restricts which files are unpacked
* Mode, mtime, owner and group are restored, directories last

The CLI (`rpztar`) is the primary interface; `extract_archive` and
`Extractor` are available for programmatic use.
"""

from ._version import __version__
from .logging_config import configure_logging  # noqa: F401
from .config import ExtractSettings, OwnershipPolicy  # noqa: F401
from .allowlist import load_allow_list  # noqa: F401
from .extract import Extractor, ExtractionSummary, extract_archive  # noqa: F401

__all__ = [
	"__version__",
	"configure_logging",
	"ExtractSettings",
	"OwnershipPolicy",
	"load_allow_list",
	"Extractor",
	"ExtractionSummary",
	"extract_archive",
]
