"""
Exceções do pipeline de TSLA
"""


class TSLAError(Exception):
    """Classe base dos erros do pipeline."""


class MissingSceneError(TSLAError):
    """Nenhuma imagem disponível para a geleira na data pedida."""

    def __init__(self, rgi_id: str, date: str = None):
        self.rgi_id = rgi_id
        self.date = date
        where = f" on {date}" if date else ""
        super().__init__(f"No Landsat scene for {rgi_id}{where}")


class CatalogError(TSLAError):
    """Entrada malformada no catálogo de cenas."""


class ServiceUnavailableError(TSLAError):
    """Falha do motor raster/geometria; a unidade pode ser reprocessada."""
