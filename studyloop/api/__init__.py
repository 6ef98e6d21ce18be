"""
Backend access for studyloop.

Modules:
- rpc_client: HTTP transport for named remote procedures
- schemas: request/response models
- study_service: typed study procedures
"""
from .rpc_client import RpcClient, RpcError
from .study_service import MalformedSetError, StudyService, parse_set_for_play

__all__ = ["MalformedSetError", "RpcClient", "RpcError", "StudyService", "parse_set_for_play"]
