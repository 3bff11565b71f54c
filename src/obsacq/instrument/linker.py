"""Stage converted files into the output working directory.

Every file handed to a Frame must be reachable by basename from the
output directory. A file already there (converted copy or earlier link)
is reused; otherwise a symlink to the absolute input-or-converted path
is created. Dangling links and links to a different file are reported
as inconsistencies and never overwritten.
"""

import logging
import os
from pathlib import Path

from obsacq.contracts import ObservationNotFound, StagingInconsistency

__all__ = ['StagingLinker']

logger = logging.getLogger(__name__)


class StagingLinker:
    """Symlink staging into ``data_out``.

    Parameters
    ----------
    data_out : Path
        Output working directory, owned by one running pipeline.

    Examples
    --------
    >>> linker = StagingLinker(Path("/data/red"))
    >>> linker.stage(Path("/data/raw/f20020101_00005.fits"))
    'f20020101_00005.fits'
    """

    def __init__(self, data_out: Path):
        self.data_out = Path(data_out)

    def stage(self, source: Path) -> str:
        """Make ``source`` reachable as ``data_out / source.name``.

        Idempotent: staging the same file twice leaves one link and
        returns the same basename.

        Returns
        -------
        str
            The staged basename.

        Raises
        ------
        StagingInconsistency
            If the basename is a dangling link, a link to another file,
            or the link cannot be created.
        ObservationNotFound
            If ``source`` itself does not exist.
        """
        source = Path(source).absolute()
        name = source.name
        target = self.data_out / name

        if target.is_symlink():
            link_to = os.readlink(target)
            if not target.exists():
                raise StagingInconsistency(
                    f"{target} is a symlink to {link_to}, which does not exist"
                )
            if source.exists() and not os.path.samefile(target, source):
                raise StagingInconsistency(
                    f"{target} already links to {link_to}, not to {source}"
                )
            return name

        if target.exists():
            # Real file: a converted copy written straight into data_out
            return name

        if not source.exists():
            raise ObservationNotFound(f"Input file {source} does not exist")

        logger.debug("Linking %s -> %s", target, source)
        try:
            os.symlink(source, target)
        except OSError as e:
            raise StagingInconsistency(f"Unable to link {source} to {target}: {e}") from e

        if not target.exists():
            raise StagingInconsistency(f"Staged file {target} does not resolve after linking")
        return name

    def stage_all(self, sources) -> list[str]:
        """Stage every file of an observation; the first failure aborts."""
        return [self.stage(s) for s in sources]
