from .app_setting import AppSetting
from .reference import (
    Project,
    Block,
    Unit,
    Location,
    CostCategory,
    CostType,
    Material,
    Nomenclature,
    Rate,
)
from .documentation import DocumentationTag, Documentation, DocumentationVersion
from .chessboard import (
    Chessboard,
    ChessboardMapping,
    ChessboardFloorMapping,
    ChessboardNomenclatureMapping,
    ChessboardDocumentationMapping,
    ChessboardRatesMapping,
)
