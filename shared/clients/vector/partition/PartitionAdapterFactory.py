"""One-time capability check choosing the partition adapter for a raw index."""

import inspect
from typing import Any

from shared.clients.vector.partition.FilteredPartitionAdapter import FilteredPartitionAdapter
from shared.clients.vector.partition.NamespacedPartitionAdapter import NamespacedPartitionAdapter
from shared.clients.vector.partition.PartitionAdapterInterface import PartitionAdapterInterface
from shared.helper.HelperConfig import HelperConfig

_GLOBAL_SHAPE_METHODS = ("remove", "describe", "insert", "delete_by_ids")


def _required_positional_count(func: Any) -> int:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return -1
    return sum(
        1
        for param in signature.parameters.values()
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        and param.default is inspect.Parameter.empty
    )


def is_filtered_index(index: Any) -> bool:
    """Detect the global-with-metadata-filter call shape.

    An index is treated as global when it offers any of remove/describe/insert/
    delete_by_ids, or when its upsert takes a single argument (the vectors)
    instead of (namespace, vectors).
    """
    for name in _GLOBAL_SHAPE_METHODS:
        if callable(getattr(index, name, None)):
            return True
    upsert = getattr(index, "upsert", None)
    return callable(upsert) and _required_positional_count(upsert) == 1


def create_partition_adapter(helper_config: HelperConfig, index: Any) -> PartitionAdapterInterface:
    """Wrap a raw index in the adapter matching its call shape.

    Args:
        helper_config (HelperConfig): Configuration and logger.
        index (Any): A raw vector index client.

    Returns:
        PartitionAdapterInterface: FilteredPartitionAdapter or NamespacedPartitionAdapter.
    """
    if is_filtered_index(index):
        adapter: PartitionAdapterInterface = FilteredPartitionAdapter(helper_config=helper_config, index=index)
    else:
        adapter = NamespacedPartitionAdapter(helper_config=helper_config, index=index)
    helper_config.get_logger().info(
        "Vector index %s detected as %s shape.", type(index).__name__, adapter.get_shape_name()
    )
    return adapter
