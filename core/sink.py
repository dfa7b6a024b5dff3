"""
Coletor de resultados (append-only) e materialização em xarray/NetCDF
"""
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List

import numpy as np
import xarray as xr

from core.models import TSLAResult

STRING_FIELDS = ("rgi_id", "scene_id", "date", "sensor", "state", "tool_version")


class ResultSink:

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._results: List[TSLAResult] = []

    def append(self, result: TSLAResult):
        with self._lock:
            self._results.append(result)

    def __len__(self):
        with self._lock:
            return len(self._results)

    def results(self) -> List[TSLAResult]:
        """Cópia ordenada por (geleira, data, cena), independente da ordem de conclusão."""
        with self._lock:
            results = list(self._results)
        return sorted(results, key=lambda r: (r.rgi_id or "", r.date or "", r.scene_id or ""))

    def records(self) -> List[Dict[str, object]]:
        return [result.to_record() for result in self.results()]

    def to_dataset(self) -> xr.Dataset:
        records = self.records()
        if not records:
            return xr.Dataset(attrs={'processing_date': datetime.now().isoformat(), 'total_units': 0})

        columns = {}
        for name in records[0]:
            values = [record[name] for record in records]
            if name in STRING_FIELDS:
                columns[name] = ("unit", np.array(["" if v is None else str(v) for v in values]))
            elif name == "status":
                columns[name] = ("unit", np.array(values, dtype=np.int8))
            else:
                # absent statistics are stored as NaN; `status` keeps them apart from values
                columns[name] = ("unit", np.array([np.nan if v is None else v for v in values], dtype=np.float64))

        return xr.Dataset(
            columns,
            attrs={
                'processing_date': datetime.now().isoformat(),
                'total_units': len(records),
                'estimated_units': int(sum(r["status"] for r in records)),
            },
        )

    def to_netcdf(self, path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        ds = self.to_dataset()
        ds.to_netcdf(path)
        self.logger.info(f"💾 {ds.attrs['total_units']} results saved: {path}")
        return path
