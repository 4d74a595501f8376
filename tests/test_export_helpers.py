import base64

from modules import export


def test_qr_data_uri_is_png():
    uri = export.qr_data_uri('{"ticketId": "abc"}')
    assert uri.startswith("data:image/png;base64,")
    raw = base64.b64decode(uri.split(",", 1)[1])
    assert raw.startswith(b"\x89PNG")


def test_file_data_uri_missing_logo():
    assert export.file_data_uri("") == ""
    assert export.file_data_uri("uploads/no-such-logo.png") == ""


def test_file_data_uri_reads_image(tmp_path):
    logo = tmp_path / "logo.png"
    logo.write_bytes(b"\x89PNG\r\n\x1a\nfake")
    uri = export.file_data_uri(logo)
    assert uri.startswith("data:image/png;base64,")


def test_csv_bytes_blanks_none():
    data = export.csv_bytes(
        [{"id": "1", "name": "A", "email": None}],
        [("id", "ID"), ("name", "Name"), ("email", "Email")],
    ).decode()
    assert data.splitlines() == ["ID,Name,Email", "1,A,"]


def test_ticket_template_renders_letterhead():
    html = export.render_template(
        "ticket.html",
        ticket={"ticket_number": "TKT1234ABCD"},
        branding={"school_name": "Test School", "dhse_code": "999"},
        logo="",
        fields=[("Visitor Name", "A. Kumar")],
        qr_img="data:image/png;base64,AAAA",
    )
    assert "Test School" in html
    assert "DHSE Code: 999" in html
    assert "Visitor Name:" in html
    assert "TKT1234ABCD" in html


def test_csv_cells_cannot_start_formulas():
    data = export.csv_bytes(
        [
            {"name": '=HYPERLINK("http://e.vil","x")', "purpose": "+1 visit"},
            {"name": "@SUM(A1)", "purpose": "-2"},
            {"name": "\tTab", "purpose": "Plain text"},
        ],
        [("name", "Name"), ("purpose", "Purpose")],
    ).decode()
    rows = data.splitlines()
    assert rows[1] == "\"'=HYPERLINK(\"\"http://e.vil\"\",\"\"x\"\")\",'+1 visit"
    assert rows[2] == "'@SUM(A1),'-2"
    assert rows[3] == "'\tTab,Plain text"
