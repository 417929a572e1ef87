import gzip
import io
import struct

import pytest

from htsprobe import headers
from htsprobe.errors import FormatError, HtsIOError
from htsprobe.headers import decode_sam_header, decode_vcf_header, extract_sam_header, extract_vcf_header
from htsprobe.sniff import sniff
from htsprobe.sources import to_source
from tests.hts_fixtures import bam_prelude, bcf_bytes

pysam = pytest.importorskip("pysam")


def _decode(data: bytes):
    return decode_vcf_header(sniff(io.BytesIO(data)), source="test")


def test_text_vcf_header(vcf_text):
    header = _decode(vcf_text.encode())
    assert header.samples == ("S1", "S2")
    assert header.bcf_version is None
    assert header.fileformat == "VCFv4.2"
    assert header.meta_lines[2].startswith("##contig=<ID=chr1")


def test_bcf_header_matches_text_header(vcf_text):
    text = _decode(vcf_text.encode())
    binary = _decode(bcf_bytes(vcf_text))
    assert binary.bcf_version == (2, 2)
    assert binary.meta_lines == text.meta_lines
    assert binary.samples == text.samples


def test_gzip_layers_are_transparent(vcf_text):
    assert _decode(gzip.compress(vcf_text.encode())).meta_lines == _decode(vcf_text.encode()).meta_lines
    assert _decode(gzip.compress(bcf_bytes(vcf_text))) == _decode(bcf_bytes(vcf_text))


def test_bcf_invalid_header_length():
    with pytest.raises(FormatError, match="invalid length"):
        _decode(b"BCF\x02\x02" + struct.pack("<i", 0))


def test_bcf_truncated_header_block():
    with pytest.raises(HtsIOError, match="Premature"):
        _decode(b"BCF\x02\x02" + struct.pack("<i", 500) + b"##fileformat=VCFv4.2\n")


def test_not_a_vcf():
    with pytest.raises(FormatError, match="fileformat"):
        _decode(b"@HD\tVN:1.6\n")


def test_vcf_without_chrom_line():
    with pytest.raises(FormatError, match="#CHROM"):
        _decode(b"##fileformat=VCFv4.2\n##contig=<ID=1,length=10>\n")


def test_extract_vcf_header_checks_suffix(tmp_path):
    path = tmp_path / "calls.txt"
    path.write_text("##fileformat=VCFv4.2\n")
    with pytest.raises(FormatError, match="VCF"):
        extract_vcf_header(to_source(path))


def test_extract_vcf_header_from_bcf_file(bcf_path):
    header = extract_vcf_header(to_source(bcf_path))
    assert header.samples == ("S1", "S2")


def test_variant_header_is_built_with_pysam(vcf_text):
    variant_header = _decode(vcf_text.encode()).variant_header
    assert list(variant_header.contigs) == ["chr1", "chr2", "chrM"]
    assert list(variant_header.samples) == ["S1", "S2"]


def test_decode_sam_header_rejects_binary_bam():
    data = gzip.compress(bam_prelude("@HD\tVN:1.6\n", [("1", 1000)]))
    with pytest.raises(FormatError, match="Binary BAM"):
        decode_sam_header(sniff(io.BytesIO(data)), source="reads.bam")


def test_bam_header_read_with_pysam(tmp_path):
    path = tmp_path / "reads.bam"
    header = {"HD": {"VN": "1.6"}, "SQ": [{"SN": "1", "LN": 1000}, {"SN": "2", "LN": 2000}]}
    with pysam.AlignmentFile(str(path), "wb", header=header):
        pass
    decoded = extract_sam_header(to_source(path))
    assert list(decoded.references) == ["1", "2"]
    assert list(decoded.lengths) == [1000, 2000]


@pytest.mark.parametrize("name", ["reads.bam", "reads.cram"])
def test_garbage_alignment_file_is_a_format_error(tmp_path, name):
    path = tmp_path / name
    path.write_bytes(b"this is not alignment data\n" * 8)
    with pytest.raises(FormatError) as excinfo:
        extract_sam_header(to_source(path))
    assert excinfo.value.source == str(path)
    assert excinfo.value.operation == "sam_header"


def test_sam_text_header_stops_at_first_record():
    sam = (
        "@HD\tVN:1.6\n@SQ\tSN:chr1\tLN:100\n@RG\tID:a\tSM:alice\n"
        "r1\t4\t*\t0\t0\t*\t*\t0\t0\tACGT\tIIII\n"
    )
    header = decode_sam_header(sniff(io.BytesIO(sam.encode())))
    assert header.to_dict()["RG"] == [{"ID": "a", "SM": "alice"}]


def test_extract_sam_header_rejects_other_suffixes(tmp_path):
    with pytest.raises(FormatError, match="BAM/CRAM/SAM"):
        extract_sam_header(to_source(tmp_path / "x.vcf"))


@pytest.mark.parametrize("name, mode", [("x.cram", "rc"), ("x.bam", "rb"), ("x.sam", "r")])
def test_alignment_header_goes_through_alignment_file(monkeypatch, tmp_path, name, mode):
    calls = []

    class FakeAlignmentFile:
        def __init__(self, path, mode, **kwargs):
            calls.append((path, mode, kwargs))
            self.header = pysam.AlignmentHeader.from_dict(
                {"SQ": [{"SN": "chr1", "LN": 10}], "RG": [{"ID": "x", "SM": "s"}]}
            )

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

    fake = type("FakePysam", (), {"AlignmentFile": FakeAlignmentFile, "AlignmentHeader": pysam.AlignmentHeader})()
    monkeypatch.setattr(headers, "pysam", fake)
    header = extract_sam_header(to_source(tmp_path / name))
    assert list(header.references) == ["chr1"]
    assert calls[0][1] == mode
    assert calls[0][2]["check_sq"] is False


def test_to_text_of_bcf_matches_plain_vcf_header(vcf_text):
    text_header = _decode(vcf_text.encode())
    bcf_header = _decode(bcf_bytes(vcf_text))
    assert bcf_header.to_text() == text_header.to_text()
    expected = "".join(line + "\n" for line in vcf_text.splitlines() if line.startswith("#"))
    assert text_header.to_text() == expected


def test_to_text_without_samples_omits_format_column():
    header = _decode(b"##fileformat=VCFv4.2\n#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\n")
    assert header.samples == ()
    assert header.to_text().splitlines()[-1] == "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO"
