"""Raw to working format conversion.

Converts a raw file into the pipeline's working format, or passes it
through untouched when the formats already agree. Conversion is keyed by
input path: the output name is derived from the input stem, and an
existing output is reused unless ``formats.overwrite`` is set.

Supported formats:

- FITS (``.fits``, ``.fit``, ``.fts``), read and written with astropy
- NETCDF (``.nc``), read and written with xarray
- NDF (``.sdf``), pass-through only
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np
import xarray as xr
from astropy.io import fits

from obsacq.contracts import ConversionFailed
from obsacq.schemas import InternalConfig

__all__ = ['FormatConverter', 'guess_format', 'FORMAT_SUFFIXES']

logger = logging.getLogger(__name__)

FORMAT_SUFFIXES = {
    "FITS": (".fits", ".fit", ".fts"),
    "NETCDF": (".nc",),
    "NDF": (".sdf",),
}

# Header cards that carry no value worth keeping as an attribute
_SKIP_CARDS = {"", "COMMENT", "HISTORY", "SIMPLE", "EXTEND", "END"}


def guess_format(path: Union[str, Path]) -> str:
    """Format name from a filename suffix.

    Raises
    ------
    ConversionFailed
        If the suffix belongs to no known format.
    """
    suffix = Path(path).suffix.lower()
    for name, suffixes in FORMAT_SUFFIXES.items():
        if suffix in suffixes:
            return name
    raise ConversionFailed(f"Unable to determine data format of {path}")


def _attr_value(value):
    """FITS card value as a netCDF-safe attribute, or None to drop it."""
    if isinstance(value, (bool, np.bool_)):
        return int(value)
    if isinstance(value, (int, float, str, np.integer, np.floating)):
        return value
    return None


class FormatConverter:
    """Convert raw files to the configured working format.

    Parameters
    ----------
    config : InternalConfig
        Uses ``formats.working_format`` and ``formats.overwrite``.
    data_out : Path
        Directory receiving converted files.
    """

    def __init__(self, config: InternalConfig, data_out: Path):
        self.working_format = config.formats.working_format
        self.raw_format = config.formats.raw_format
        self.overwrite = config.formats.overwrite
        self.data_out = Path(data_out)

    def output_path(self, infile: Path) -> Path:
        suffix = FORMAT_SUFFIXES[self.working_format][0]
        return self.data_out / (Path(infile).stem + suffix)

    def convert(self, infile: Union[str, Path]) -> Path:
        """Return the working-format file for ``infile``.

        Same format in and out returns ``infile`` itself. Otherwise the
        converted file lives in the output directory.

        Raises
        ------
        ConversionFailed
            If the format is unknown, there is no converter for the pair,
            or the conversion itself fails.
        """
        infile = Path(infile)
        in_format = guess_format(infile)

        if in_format == self.working_format:
            return infile

        outfile = self.output_path(infile)
        if outfile.exists() and not self.overwrite:
            logger.warning("Converted file %s already exists, not converting again", outfile.name)
            return outfile

        converters = {
            ("FITS", "NETCDF"): self._fits_to_netcdf,
            ("NETCDF", "FITS"): self._netcdf_to_fits,
        }
        func = converters.get((in_format, self.working_format))
        if func is None:
            raise ConversionFailed(
                f"No converter from {in_format} to {self.working_format} for {infile}"
            )

        if not infile.exists():
            raise ConversionFailed(f"Input file {infile} does not exist")

        logger.info("Converting %s from %s to %s", infile.name, in_format, self.working_format)
        outfile.parent.mkdir(parents=True, exist_ok=True)
        try:
            func(infile, outfile)
        except (OSError, ValueError, TypeError) as e:
            raise ConversionFailed(f"Conversion of {infile} failed: {e}") from e

        if not outfile.exists():
            raise ConversionFailed(f"Conversion of {infile} produced no output")
        return outfile

    @staticmethod
    def _fits_to_netcdf(infile: Path, outfile: Path) -> None:
        """First HDU holding data becomes the ``data`` variable."""
        with fits.open(infile) as hdul:
            hdu = next((h for h in hdul if h.data is not None), None)
            if hdu is None:
                raise ValueError("no HDU with data")
            data = np.asarray(hdu.data)
            # numpy axis order is the reverse of FITS NAXISn
            dims = tuple(f"naxis{data.ndim - i}" for i in range(data.ndim))
            attrs = {}
            for key, value in hdu.header.items():
                if key in _SKIP_CARDS or key.startswith("NAXIS"):
                    continue
                value = _attr_value(value)
                if value is not None:
                    attrs[key] = value

        ds = xr.Dataset({"data": (dims, data)}, attrs=attrs)
        ds.attrs["source"] = str(infile)
        ds.to_netcdf(outfile, mode='w', engine='netcdf4', format='NETCDF4')
        ds.close()

    @staticmethod
    def _netcdf_to_fits(infile: Path, outfile: Path) -> None:
        """First data variable becomes the primary HDU."""
        with xr.open_dataset(infile) as ds:
            names = list(ds.data_vars)
            if not names:
                raise ValueError("no data variables")
            data = ds[names[0]].values
            header = fits.Header()
            for key, value in ds.attrs.items():
                if len(key) <= 8 and _attr_value(value) is not None:
                    header[key] = value

        fits.PrimaryHDU(data=data, header=header).writeto(outfile, overwrite=True)
