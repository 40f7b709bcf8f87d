# utils.py

FREE_COLOR = "#d3d3d3"


def get_color(allocated, owner=None):
    """Return a color for allocated/free blocks."""
    if not allocated:
        return FREE_COLOR  # light grey
    # pastel hue derived from the owner so a process keeps its color across charts
    hue = (owner or 0) * 47 % 360
    return f"hsl({hue}, 70%, 75%)"


def block_label(block):
    """Short label for a block in the memory map."""
    if block.free:
        return f"Free {block.size}KB"
    return f"P{block.owner} {block.size}KB"
