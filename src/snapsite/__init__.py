"""snapsite core package.

A build reads a source tree into a ``FileCollection``, passes it through an
ordered list of named stages, and writes the result to a destination tree:

- **pipeline**: ``Pipeline``, the build controller (read, run, write)
- **reader**: source tree walking, ignore handling, ``SourceReader``
- **frontmatter**: splitting leading YAML metadata blocks off file content
- **paths**: logical path normalization and destination joins
- **models**: ``FileRecord`` and ``FileCollection``
- **stages**: the stage contract and ``StageRunner``
- **writer**: destination cleaning and ``DestinationWriter``
- **filesystem**: ``LocalFileSystem`` and the in-memory ``MemoryFileSystem``
- **render**: the builtin template rendering stage
- **config** / **cli**: YAML site configuration and the ``snapsite`` command

Example::

    from snapsite import Pipeline

    site = Pipeline("site", "public", clean=True)

    @site.stage("shout")
    def shout(files):
        for record in files.values():
            record.content = record.content.upper()

    site.build()
"""

from .errors import BuildError, SnapsiteError
from .filesystem import LocalFileSystem, MemoryFileSystem
from .models import FileCollection, FileRecord
from .pipeline import BuildReport, Pipeline
from .version import __version__

__all__ = [
    "__version__",
    "BuildError",
    "BuildReport",
    "FileCollection",
    "FileRecord",
    "LocalFileSystem",
    "MemoryFileSystem",
    "Pipeline",
    "SnapsiteError",
]
