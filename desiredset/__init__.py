"""
The main desired-sets module for all the exported functions & classes.
"""
# isort: skip_file

# Unlike all other places, where we import other modules and refer
# the functions via the modules, this is the library's top-level interface,
# as it is seen by the users. So, we export the individual functions.

from desiredset._cogs.clients.auth import (
    APIContext,
)
from desiredset._cogs.clients.errors import (
    APIError,
    APIUnauthorizedError,
    APIForbiddenError,
    APINotFoundError,
    APIConflictError,
    APIAlreadyExistsError,
    APIServerError,
)
from desiredset._cogs.configs.configuration import (
    ApplySettings,
)
from desiredset._cogs.helpers.loaders import (
    load_manifests,
)
from desiredset._cogs.helpers.typedefs import (
    Logger,
)
from desiredset._cogs.helpers.versions import (
    version as __version__,
)
from desiredset._cogs.structs.bodies import (
    RawBody,
    build_owner_reference,
)
from desiredset._cogs.structs.credentials import (
    LoginError,
    ConnectionInfo,
)
from desiredset._cogs.structs.errors import (
    ReconciliationError,
    ResourceLookupError,
    NoCacheError,
    ScopeError,
    ListingError,
    ReplaceWaitError,
    AggregatedError,
    ErrorSink,
)
from desiredset._cogs.structs.objectsets import (
    ObjectKey,
    ObjectByKey,
    ObjectSet,
)
from desiredset._cogs.structs.patches import (
    PatchType,
    sanitize_patch,
)
from desiredset._cogs.structs.plans import (
    Plan,
    PlannedUpdate,
)
from desiredset._cogs.structs.references import (
    GroupKind,
    GroupVersionKind,
    Resource,
)
from desiredset._cogs.structs.selectors import (
    LabelSelector,
)
from desiredset._core.actions.comparing import (
    compare_objects,
    prepare_object_for_create,
)
from desiredset._core.actions.differ import (
    compare_sets,
)
from desiredset._core.actions.loggers import (
    configure,
    LogFormat,
    ObjectLogger,
)
from desiredset._core.engines.caching import (
    MemoryCache,
)
from desiredset._core.engines.resolving import (
    ApiResolver,
)
from desiredset._core.engines.stores import (
    ApiStore,
    StorePatcher,
    PlanningPatcher,
    ReplaceOnChange,
)
from desiredset._core.intents.capabilities import (
    ObjectStore,
    ObjectCache,
    Patcher,
    Reconciler,
    ClientResolver,
    UpdateOutcome,
    Unchanged,
    Patched,
    ReplaceRequired,
    Failed,
)
from desiredset._core.intents.piggybacking import (
    login_with_kubeconfig,
    login_with_service_account,
)
from desiredset._core.reactor.processing import (
    DesiredSet,
)
from desiredset._core.reactor.running import (
    run,
    apply,
)

__all__ = [
    'APIContext',
    'APIError', 'APIUnauthorizedError', 'APIForbiddenError', 'APINotFoundError',
    'APIConflictError', 'APIAlreadyExistsError', 'APIServerError',
    'ApplySettings',
    'load_manifests',
    'Logger',
    'RawBody', 'build_owner_reference',
    'LoginError', 'ConnectionInfo',
    'ReconciliationError', 'ResourceLookupError', 'NoCacheError', 'ScopeError',
    'ListingError', 'ReplaceWaitError', 'AggregatedError', 'ErrorSink',
    'ObjectKey', 'ObjectByKey', 'ObjectSet',
    'PatchType', 'sanitize_patch',
    'Plan', 'PlannedUpdate',
    'GroupKind', 'GroupVersionKind', 'Resource',
    'LabelSelector',
    'compare_objects', 'prepare_object_for_create',
    'compare_sets',
    'configure', 'LogFormat', 'ObjectLogger',
    'MemoryCache',
    'ApiResolver',
    'ApiStore', 'StorePatcher', 'PlanningPatcher', 'ReplaceOnChange',
    'ObjectStore', 'ObjectCache', 'Patcher', 'Reconciler', 'ClientResolver',
    'UpdateOutcome', 'Unchanged', 'Patched', 'ReplaceRequired', 'Failed',
    'login_with_kubeconfig', 'login_with_service_account',
    'DesiredSet',
    'run', 'apply',
]
