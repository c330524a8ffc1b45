from __future__ import annotations


class ComboPlotError(ValueError):
    """Raised for caller bugs at the render call boundary. Bad data values never raise."""


class ChartInputError(ComboPlotError):
    pass


class SeriesConfigError(ComboPlotError):
    pass


class ManifestError(ComboPlotError):
    pass
