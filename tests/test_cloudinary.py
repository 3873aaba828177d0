from urllib.parse import urlparse

from utils.cloudinary import (
    asset_from_url,
    cloud_name_from_url,
    delivery_url,
    is_cloudinary_url,
    public_id_from_url,
    watermark_transformation,
)


def _without_query(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


class TestAssetFromUrl:
    def test_versioned_url(self):
        url = "https://res.cloudinary.com/demo/image/upload/v1712345/pelayanan_desa/ktp_budi.jpg"
        assert public_id_from_url(url) == "pelayanan_desa/ktp_budi"
        assert cloud_name_from_url(url) == "demo"

    def test_url_with_transformation(self):
        url = "https://res.cloudinary.com/demo/image/upload/w_600,c_fit/v1/folder/a.png"
        assert public_id_from_url(url) == "folder/a"

    def test_plain_url(self):
        assert public_id_from_url("https://res.cloudinary.com/demo/image/upload/sample.jpg") == "sample"

    def test_versionless_folder_is_kept(self):
        url = "https://res.cloudinary.com/demo/image/upload/ktp_uploads/ktp.jpg"
        assert public_id_from_url(url) == "ktp_uploads/ktp"

    def test_transformation_before_versionless_folder(self):
        url = "https://res.cloudinary.com/demo/image/upload/q_auto,f_auto/ktp_uploads/ktp.jpg"
        assert public_id_from_url(url) == "ktp_uploads/ktp"

    def test_raw_asset_keeps_extension(self):
        url = "https://res.cloudinary.com/demo/raw/upload/v1712/pelayanan_desa/surat.pdf"
        assert asset_from_url(url) == ("raw", "pelayanan_desa/surat.pdf")

    def test_video_asset(self):
        url = "https://res.cloudinary.com/demo/video/upload/v3/pelayanan_desa/klip.mp4"
        assert asset_from_url(url) == ("video", "pelayanan_desa/klip")

    def test_foreign_url(self):
        assert public_id_from_url("https://example.com/image/upload/a.jpg") is None
        assert asset_from_url("https://res.cloudinary.com/demo/image/fetch/a.jpg") is None
        assert not is_cloudinary_url("https://example.com/a.jpg")
        assert not is_cloudinary_url("")


class TestUrlBuilding:
    def test_delivery_url_appends_format(self):
        url = delivery_url("demo", "folder/a")
        assert _without_query(url) == "https://res.cloudinary.com/demo/image/upload/folder/a.jpg"

    def test_delivery_url_keeps_existing_extension(self):
        url = delivery_url("demo", "folder/a.png", [{"quality": 90}])
        assert _without_query(url) == "https://res.cloudinary.com/demo/image/upload/q_90/folder/a.png"

    def test_bare_delivery_url(self):
        url = delivery_url("demo", "pelayanan_desa/abc", fmt="")
        assert _without_query(url) == "https://res.cloudinary.com/demo/image/upload/pelayanan_desa/abc"

    def test_watermark_layers(self):
        steps = watermark_transformation("FOTO 1/2", ["Pemohon: Ani"], logo_public_id="branding/logo")
        url = delivery_url("demo", "pelayanan_desa/abc", steps)
        path = urlparse(url).path
        assert "l_text:Arial_28:" in path
        assert "l_text:Arial_28_bold:FOTO%201" in path
        assert "co_rgb:ffd600" in path
        assert "l_branding:logo" in path
        assert path.endswith("/q_90/pelayanan_desa/abc.jpg")

    def test_transformation_without_logo(self):
        steps = watermark_transformation("FOTO 1/1", [], quality=80)
        assert all("public_id" not in (s.get("overlay") or {}) for s in steps)
        assert steps[-1] == {"quality": 80}
