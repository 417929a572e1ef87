"""Sample extraction from VCF genotype columns and SAM read groups."""

from __future__ import annotations

from typing import Collection, Optional

from htsprobe.constants import READ_GROUP_SAMPLE_TAG
from htsprobe.errors import HtsIOError
from htsprobe.headers import extract_read_groups, extract_vcf_header
from htsprobe.sources import find_source, is_alignment, is_interval_list, is_vcf


def extract_samples(source, rg_attribute: Optional[str] = READ_GROUP_SAMPLE_TAG) -> Collection[str]:
    """
    Samples declared by ``source``.

    VCF/BCF: genotype sample names in column order.
    SAM/BAM/CRAM and interval lists: distinct non-blank values of ``rg_attribute`` across
    read groups (``SM`` when blank).
    """
    source = find_source(source)
    if is_vcf(source):
        return list(extract_vcf_header(source).samples)
    if is_alignment(source) or is_interval_list(source):
        attribute = rg_attribute if rg_attribute and rg_attribute.strip() else READ_GROUP_SAMPLE_TAG
        samples = set()
        for read_group in extract_read_groups(source):
            value = read_group.get(attribute)
            if value is not None and str(value).strip():
                samples.add(str(value))
        return samples
    raise HtsIOError(
        f"Cannot extract samples from {source}",
        source=source.path,
        operation="samples",
    )
