"""Text preprocessing: line grouping for price sheets and name normalization"""
import re
from itertools import groupby
from typing import List, Optional

from .text_extractor import TextBlock


class Preprocessor:
    """Prepares document text for the model and canonical keys for merging"""

    def __init__(self):
        self.normalization_patterns = [
            (r'[ \t\r\f\v]+', ' '),  # Runs of blanks to single space
            (r'\n{3,}', '\n\n'),  # At most one empty line
        ]

    def normalize_text(self, text: str) -> str:
        """Standardize whitespace while keeping line structure (tables rely on it)"""
        normalized = text.strip()
        for pattern, replacement in self.normalization_patterns:
            normalized = re.sub(pattern, replacement, normalized)
        return '\n'.join(line.strip() for line in normalized.split('\n'))

    @staticmethod
    def clean_name(name: str) -> str:
        """Collapse internal whitespace in a location or resort name"""
        return ' '.join(name.split())

    def name_key(self, name: str) -> str:
        """Case- and whitespace-insensitive key used to merge names"""
        return self.clean_name(name).casefold()

    def group_blocks(self, blocks: List[TextBlock],
                    line_tolerance: float = 3.0) -> List[List[TextBlock]]:
        """
        Group text blocks that sit on the same visual line

        Table columns can be far apart horizontally, so only the vertical
        position decides whether two blocks share a line.

        Args:
            blocks: Text blocks of a single page
            line_tolerance: Maximum vertical offset in points within one line

        Returns:
            List of block groups, top to bottom
        """
        if not blocks:
            return []

        # Sort blocks by vertical position (top to bottom)
        sorted_blocks = sorted(blocks, key=lambda b: (b.bbox[1], b.bbox[0]))

        groups = []
        current_group = [sorted_blocks[0]]

        for block in sorted_blocks[1:]:
            if abs(block.bbox[1] - current_group[0].bbox[1]) <= line_tolerance:
                current_group.append(block)
                continue

            groups.append(current_group)
            current_group = [block]

        groups.append(current_group)
        return groups

    def to_text(self, blocks: List[TextBlock], max_chars: Optional[int] = None) -> str:
        """
        Render blocks as page-delimited lines in reading order

        Args:
            blocks: Blocks extracted from one document
            max_chars: Optional cap on the returned text length

        Returns:
            Plain text with one visual line per row, so rate tables keep
            their room/price pairing
        """
        pages = []
        for page_num, page_blocks in groupby(blocks, key=lambda b: b.page):
            lines = [
                ' | '.join(b.text for b in sorted(group, key=lambda b: b.bbox[0]))
                for group in self.group_blocks(list(page_blocks))
            ]
            pages.append(f"--- page {page_num} ---\n" + '\n'.join(lines))

        text = '\n'.join(pages)
        if max_chars is not None and len(text) > max_chars:
            text = text[:max_chars]
        return text
