"""Split a flat cart into one group of lines per seller."""

from collections import OrderedDict


def partition_cart(lines) -> "OrderedDict[str, list]":
    """Group cart lines by seller.

    Sellers appear in the order they first occur in the cart and each seller's
    lines keep their cart order. Every input line ends up in exactly one
    partition.
    """
    partitions = OrderedDict()
    for line in lines:
        partitions.setdefault(str(line.seller_id), []).append(line)
    return partitions
