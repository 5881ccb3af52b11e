"""
coursecore/services/__init__.py
"""
from coursecore.services.resilient_executor import ResilientExecutor, RetryPolicy
from coursecore.services.registry import CoreServices, build_services
