from .geometry_utils import BBox, minimum_containing_bbox, regions_overlap
from .logger import setup_logger, setup_package_loggers, get_logger

__all__ = [
    'BBox',
    'minimum_containing_bbox',
    'regions_overlap',
    'setup_logger',
    'setup_package_loggers',
    'get_logger',
]
