import csv
from typing import Dict, List

import pandas as pd

from lexicompare.comparison import ComparisonResult

EXPORT_FILENAME = "lexicompare_results.csv"
FOUND = "Found"
NOT_FOUND = "Not Found"


def results_to_dataframe(result: ComparisonResult) -> pd.DataFrame:
    """Term rows x file-name columns with Found / Not Found cells."""
    columns = ["Term"] + [f.name for f in result.files]
    rows = []
    for term in result.terms:
        row = [term]
        for f in result.files:
            row.append(FOUND if result.matrix[(term, f.id)].found else NOT_FOUND)
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def display_column_names(result: ComparisonResult) -> List[str]:
    """File names made unique for display; repeats get a (2), (3)... suffix."""
    counts: Dict[str, int] = {}
    used = {"Term"}
    labels = []
    for f in result.files:
        n = counts.get(f.name, 0)
        label = f.name if n == 0 and f.name not in used else f"{f.name} ({n + 1})"
        while label in used:
            n += 1
            label = f"{f.name} ({n + 1})"
        counts[f.name] = n + 1
        used.add(label)
        labels.append(label)
    return labels


def results_to_display_frame(result: ComparisonResult) -> pd.DataFrame:
    """
    Matrix for on-screen rendering.

    Column labels are unique even when uploads share a name, and found cells
    carry their number of matching lines, e.g. "Found (2)".
    """
    rows = []
    for term in result.terms:
        row = [term]
        for f in result.files:
            cell = result.matrix[(term, f.id)]
            row.append(f"{FOUND} ({len(cell.matches)})" if cell.found else NOT_FOUND)
        rows.append(row)
    return pd.DataFrame(rows, columns=["Term"] + display_column_names(result))


def matches_to_dataframe(result: ComparisonResult) -> pd.DataFrame:
    """One row per matching line, in term then file then line order."""
    records = []
    for term in result.terms:
        for f in result.files:
            for match in result.matrix[(term, f.id)].matches:
                records.append({
                    "Term": term,
                    "File": f.name,
                    "Line": match.line_number,
                    "Context": match.context,
                })
    return pd.DataFrame(records, columns=["Term", "File", "Line", "Context"])


def export_to_csv(result: ComparisonResult) -> str:
    """
    Render the found/not-found matrix as CSV.

    Every field is quoted and rows end with CRLF.
    """
    return results_to_dataframe(result).to_csv(
        index=False,
        quoting=csv.QUOTE_ALL,
        lineterminator="\r\n",
    )


def export_to_json(result: ComparisonResult) -> str:
    return matches_to_dataframe(result).to_json(orient="records", indent=2)
