from .api_gateway import ApiGateway
from .permission_service import PermissionService
from .session_store import SessionContext, SessionStore, EMPTY_SESSION
from .workflow_service import WorkflowMachine, WorkflowService, Edge
