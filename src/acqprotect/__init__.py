from .config import LogLevel, ProtectionConfig, load_config_from_env
from .context import caller_from_headers, parse_permissions
from .cql import combine, encode_for_transport, ids_to_clause
from .exceptions import (
    AcqProtectError,
    ConfigurationError,
    InvalidRequestError,
    ProtectionInternalError,
    UnitsNotFoundError,
    UpstreamServiceError,
    UserHasNoAcqPermissionError,
    UserHasNoPermissionError,
    get_http_status,
)
from .gateway import HttpUnitGateway, UnitGateway
from .logging import (
    AcqProtectFormatter,
    CallerLoggerAdapter,
    get_caller_logger,
    safe_preview,
    setup_logging,
)
from .models import (
    AcquisitionUnit,
    AcquisitionUnitCollection,
    AcquisitionUnitMembership,
    AcquisitionUnitMembershipCollection,
    CallerContext,
)
from .protection import (
    AcqDesiredPermissions,
    AcqUnitsClauseBuilder,
    DenialReason,
    ProtectedOperationType,
    ProtectionDecision,
    ProtectionOutcome,
    ProtectionService,
    apply_merging_strategy,
)

__all__ = [
    'AcqDesiredPermissions',
    'AcqProtectError',
    'AcqProtectFormatter',
    'AcqUnitsClauseBuilder',
    'AcquisitionUnit',
    'AcquisitionUnitCollection',
    'AcquisitionUnitMembership',
    'AcquisitionUnitMembershipCollection',
    'CallerContext',
    'CallerLoggerAdapter',
    'ConfigurationError',
    'DenialReason',
    'HttpUnitGateway',
    'InvalidRequestError',
    'LogLevel',
    'ProtectedOperationType',
    'ProtectionConfig',
    'ProtectionDecision',
    'ProtectionInternalError',
    'ProtectionOutcome',
    'ProtectionService',
    'UnitGateway',
    'UnitsNotFoundError',
    'UpstreamServiceError',
    'UserHasNoAcqPermissionError',
    'UserHasNoPermissionError',
    'apply_merging_strategy',
    'caller_from_headers',
    'combine',
    'encode_for_transport',
    'get_caller_logger',
    'get_http_status',
    'ids_to_clause',
    'load_config_from_env',
    'parse_permissions',
    'safe_preview',
    'setup_logging',
]
