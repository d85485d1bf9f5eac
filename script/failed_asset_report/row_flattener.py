"""
Flattening of failed asset pages into CSV rows.
"""
import csv
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping


CSV_HEADERS = [
    'Asset Name', 'Access Level', 'Asset Type', 'Asset Id', 'Policy Id', 'Policy Title',
    'Region', 'Tags', 'Account Id', 'Account Name', 'Cloud Provider', 'Benchmark ID',
    'Benchmark Name'
]

# CSV column -> field on the failed policy asset entry
ASSET_FIELDS = [
    ('Asset Name', 'resourceName'),
    ('Access Level', 'accessLevel'),
    ('Asset Type', 'resourceType'),
    ('Asset Id', 'resourceId'),
    ('Policy Id', 'policyId'),
    ('Policy Title', 'policyTitle'),
    ('Region', 'region'),
]

# CSV column -> field on the enclosing account block
ACCOUNT_FIELDS = [
    ('Account Id', 'accountId'),
    ('Account Name', 'accountName'),
    ('Cloud Provider', 'connectorType'),
    ('Benchmark ID', 'benchmarkId'),
    ('Benchmark Name', 'benchmarkName'),
]

TAG_SEPARATOR = ', '


def _tag_pair(key: Any, value: Any) -> str:
    if value is None or value == '':
        return str(key)
    return f"{key}:{value}"


def _serialize_mapping(tags: Mapping) -> List[str]:
    return [_tag_pair(key, value) for key, value in tags.items()]


def _serialize_string(tags: str) -> str:
    text = tags.strip()
    if text.startswith('[') and text.endswith(']'):
        text = text[1:-1].strip()
    return text


def serialize_tags(tags: Any) -> str:
    """
    Render a tag collection as a single delimited string.

    Plain strings lose one pair of enclosing brackets, mappings and
    key/value entries become ``key:value`` and everything is joined
    with ``", "`` in source order.
    """
    if tags is None:
        return ''
    if isinstance(tags, str):
        return _serialize_string(tags)
    if isinstance(tags, Mapping):
        parts = _serialize_mapping(tags)
    elif isinstance(tags, (list, tuple)):
        parts = []
        for item in tags:
            if isinstance(item, Mapping):
                if 'key' in item or 'Key' in item:
                    parts.append(_tag_pair(item.get('key', item.get('Key')),
                                           item.get('value', item.get('Value'))))
                else:
                    parts.extend(_serialize_mapping(item))
            elif isinstance(item, str):
                parts.append(_serialize_string(item))
            elif item is not None:
                parts.append(str(item))
    else:
        parts = [str(tags)]

    return TAG_SEPARATOR.join(part for part in parts if part)


def _cell(value: Any) -> Any:
    return '' if value is None else value


def iter_rows(page: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    """Yield one output row per failed asset in the page."""
    result = page.get('result') or {}
    for block in result.get('failedAssets') or []:
        account_values = {column: _cell(block.get(field)) for column, field in ACCOUNT_FIELDS}
        for asset in block.get('failedPolicyAssetsLists') or []:
            row = {column: _cell(asset.get(field)) for column, field in ASSET_FIELDS}
            row['Tags'] = serialize_tags(asset.get('tags'))
            row.update(account_values)
            yield row


class RowFlattener:
    """Appends flattened failed asset rows to the report CSV."""

    def __init__(self, headers: List[str] = None):
        self.headers = headers or CSV_HEADERS

    def flatten(self, page: Dict[str, Any], output_path: Path) -> int:
        """
        Append the page's rows to the CSV, writing the header on file creation.

        Args:
            page: Parsed failed assets page
            output_path: CSV report path

        Returns:
            Number of rows written for this page
        """
        rows = list(iter_rows(page))
        if not rows:
            return 0

        output_path = Path(output_path)
        write_header = not output_path.exists() or output_path.stat().st_size == 0
        with open(output_path, 'a', newline='', encoding='utf-8') as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=self.headers)
            if write_header:
                writer.writeheader()
            writer.writerows(rows)

        return len(rows)
