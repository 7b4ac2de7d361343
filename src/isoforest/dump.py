"""
This module renders isolation trees for offline inspection: as indented
text, as JSON-serializable dictionaries, or as a 2D partition plot.
"""

from __future__ import annotations

from typing import Any, TextIO

import matplotlib.pyplot as plt

from .tree import ExternalNode, InternalNode, IsolationTree, Node


def node_to_dict(node: Node) -> dict[str, Any]:
    if isinstance(node, InternalNode):
        return {
            "type": "internal",
            "split_feature": node.split_feature,
            "split_value": node.split_value,
            "left": node_to_dict(node.left),
            "right": node_to_dict(node.right),
        }
    return {"type": "external", "size": node.size}


def tree_to_dict(tree: IsolationTree) -> dict[str, Any]:
    """
    Args:
        tree: Fitted IsolationTree instance.
    Returns:
        Nested dictionary describing the tree, safe to pass to json.dump.
    """
    assert tree.root is not None

    return {
        "sample_size": tree.sample_size,
        "height_limit": tree.height_limit,
        "missing": tree.missing,
        "root": node_to_dict(tree.root),
    }


def render_node(node: Node, indent: int = 0) -> list[str]:
    pad = "  " * indent
    if isinstance(node, ExternalNode):
        return [f"{pad}External size={node.size}"]

    lines = [f"{pad}Internal {node.split_feature} < {node.split_value:.6g}"]
    lines.extend(render_node(node.left, indent + 1))
    lines.extend(render_node(node.right, indent + 1))
    return lines


def render_tree(tree: IsolationTree) -> str:
    assert tree.root is not None

    return "\n".join(render_node(tree.root))


def dump_trees(trees: list[IsolationTree], stream: TextIO) -> None:
    """
    Writes every tree as indented text, left child before right child.
    Args:
        trees: Fitted trees to render.
        stream: Writable text stream.
    """
    for tree_idx, tree in enumerate(trees):
        stream.write(
            f"Tree {tree_idx} (samples={tree.sample_size}, depth={tree.depth()})\n"
        )
        stream.write(render_tree(tree))
        stream.write("\n")
    stream.flush()


def _plot_node(
    node: Node,
    limits: dict[str, list[float]],
    x_feature: str,
    y_feature: str,
) -> None:
    if isinstance(node, ExternalNode):
        return

    # Splits on any other feature do not show up in this projection
    if node.split_feature == x_feature:
        plt.plot([node.split_value, node.split_value],
                 [limits[y_feature][0], limits[y_feature][1]], c="gray")
    elif node.split_feature == y_feature:
        plt.plot([limits[x_feature][0], limits[x_feature][1]],
                 [node.split_value, node.split_value], c="gray")

    limits_lower = {name: list(bounds) for name, bounds in limits.items()}
    limits_upper = {name: list(bounds) for name, bounds in limits.items()}
    if node.split_feature in limits:
        limits_lower[node.split_feature][1] = node.split_value
        limits_upper[node.split_feature][0] = node.split_value

    _plot_node(node.left, limits_lower, x_feature, y_feature)
    _plot_node(node.right, limits_upper, x_feature, y_feature)


def plot_partition_space_2D(tree: IsolationTree, x_feature: str, y_feature: str) -> None:
    """
    Visualize the space partitioning created by a tree, projected onto two
    features. The figure is left open so callers can add points before
    showing or saving it.
    Args:
        tree: Fitted IsolationTree instance.
        x_feature: Feature drawn on the horizontal axis.
        y_feature: Feature drawn on the vertical axis.
    """
    assert tree.feature_limits is not None
    assert tree.root is not None

    for name in (x_feature, y_feature):
        if name not in tree.feature_limits:
            raise ValueError(f"Tree was not built from any sample with feature {name!r}.")

    limits = {name: list(bounds) for name, bounds in tree.feature_limits.items()}
    x_limits = limits[x_feature]
    y_limits = limits[y_feature]

    plt.title("Space Partition Isolation Tree")
    plt.xlabel(x_feature)
    plt.ylabel(y_feature)

    plt.plot([x_limits[0], x_limits[1]], [y_limits[0], y_limits[0]], c="gray")
    plt.plot([x_limits[0], x_limits[1]], [y_limits[1], y_limits[1]], c="gray")
    plt.plot([x_limits[0], x_limits[0]], [y_limits[0], y_limits[1]], c="gray")
    plt.plot([x_limits[1], x_limits[1]], [y_limits[0], y_limits[1]], c="gray")

    _plot_node(tree.root, limits, x_feature, y_feature)
