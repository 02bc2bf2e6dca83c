import json
from typing import Any, List, Optional
from pathlib import Path

from processor.data_models import TextFragment
from processor.document_structure import PageFragments


def save_json(data: Any, output_path: str, indent: int = 2) -> None:
    """
    Save data to a JSON file.

    Args:
        data: Data to save
        output_path: Path to save JSON file
        indent: Number of spaces for indentation
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)


def load_json(input_path: str) -> Any:
    """
    Load data from a JSON file.

    Args:
        input_path: Path to JSON file

    Returns:
        Any: Loaded JSON data

    Raises:
        ValueError: If the file is not valid JSON
    """
    with open(input_path, 'r', encoding='utf-8') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {input_path}: {e}") from e


def load_fragment_pages(input_path: str, page_width: Optional[float] = None,
                        page_height: Optional[float] = None) -> List[PageFragments]:
    """
    Load text fragments from a JSON file.

    Two shapes are accepted: a list of page objects
    ``{"page_index", "page_width", "page_height", "fragments"}``, or a plain
    list of fragments which becomes a single page sized by ``page_width`` and
    ``page_height`` (falling back to the extent of the fragments).

    Args:
        input_path: Path to JSON file
        page_width: Page width for a plain fragment list
        page_height: Page height for a plain fragment list

    Returns:
        List[PageFragments]: One entry per page

    Raises:
        ValueError: If the file content has neither shape
    """
    data = load_json(input_path)
    if isinstance(data, dict):
        data = data.get('pages', [data])
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of pages or fragments in {input_path}")
    if not data:
        return []

    if all(isinstance(item, dict) and 'fragments' in item for item in data):
        return [_page_from_dict(item, i) for i, item in enumerate(data)]

    fragments = [TextFragment.from_dict(item) for item in data]
    if page_width is None:
        page_width = max((f.right for f in fragments), default=0.0)
    if page_height is None:
        page_height = max((f.top for f in fragments), default=0.0)
    return [PageFragments(page_index=0, page_height=float(page_height),
                          page_width=float(page_width), fragments=fragments)]


def _page_from_dict(data: dict, default_index: int) -> PageFragments:
    try:
        return PageFragments(
            page_index=int(data.get('page_index', default_index)),
            page_height=float(data['page_height']),
            page_width=float(data['page_width']),
            fragments=[TextFragment.from_dict(item) for item in data['fragments']],
        )
    except KeyError as e:
        raise ValueError(f"Page {default_index} is missing required field {e.args[0]!r}") from e
    except TypeError as e:
        raise ValueError(f"Invalid page {default_index}: {e}") from e
