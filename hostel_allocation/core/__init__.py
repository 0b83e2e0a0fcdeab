from hostel_allocation.core.context import RequestContext
from hostel_allocation.core.exceptions import BaseAppException, ErrorCode

__all__ = ["RequestContext", "BaseAppException", "ErrorCode"]
