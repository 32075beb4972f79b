from .core import BatchService
from .batch_operations import BatchOperationsService

__all__ = ['BatchService', 'BatchOperationsService']
