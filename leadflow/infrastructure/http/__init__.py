"""HTTP 客户端：后端 API、流程持久化、参考数据"""

from leadflow.infrastructure.http.api_client import ApiClient
from leadflow.infrastructure.http.flow_api_adapter import HttpFlowPersistenceAdapter
from leadflow.infrastructure.http.reference_data_client import ReferenceDataClient
from leadflow.infrastructure.http.token_refresher import TokenRefresher

__all__ = [
    "ApiClient",
    "HttpFlowPersistenceAdapter",
    "ReferenceDataClient",
    "TokenRefresher",
]
