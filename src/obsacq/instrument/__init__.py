"""Instrument-facing collaborators: naming, matching, conversion, staging, remote tasks."""

from obsacq.instrument.naming import InstrumentNaming, DataRoots, data_roots, format_ut
from obsacq.instrument.matcher import ObservationMatcher, LiteralName, SearchSpec, files_there, files_nonzero
from obsacq.instrument.converter import FormatConverter, guess_format
from obsacq.instrument.linker import StagingLinker
from obsacq.instrument.remote import RemoteTask, TaskRegistry, materialize_image, image_basename

__all__ = [
    'InstrumentNaming',
    'DataRoots',
    'data_roots',
    'format_ut',
    'ObservationMatcher',
    'LiteralName',
    'SearchSpec',
    'files_there',
    'files_nonzero',
    'FormatConverter',
    'guess_format',
    'StagingLinker',
    'RemoteTask',
    'TaskRegistry',
    'materialize_image',
    'image_basename',
]
