from models_config import AppConfig, BrandOption, ConfigSection, GlobalBrand
from image_utils import estimate_image_bytes, is_embedded_image, strip_oversized_logos, validate_image_size

SMALL = "data:image/png;base64," + "A" * 100
LARGE = "data:image/png;base64," + "A" * 4000
URL = "https://cdn.example.com/logo.png"


def test_is_embedded_image():
    assert is_embedded_image(SMALL)
    assert not is_embedded_image(URL)
    assert not is_embedded_image(None)


def test_estimate_image_bytes_accounts_for_padding():
    assert estimate_image_bytes("data:image/png;base64,AAAA") == 3
    assert estimate_image_bytes("data:image/png;base64,AA==") == 1
    assert validate_image_size(SMALL, max_size_kb=1)
    assert not validate_image_size(LARGE, max_size_kb=1)


def test_strip_oversized_logos_only_touches_large_embedded_images():
    config = AppConfig(
        sections=[ConfigSection(id="erp", label="ERP", options=[
            BrandOption(id="big", name="Big", logo=LARGE),
            BrandOption(id="small", name="Small", logo=SMALL),
            BrandOption(id="url", name="Url", logo=URL),
        ])],
        global_brands=[GlobalBrand(id="big_global", name="Big", logo=LARGE)],
    )
    stripped_config, stripped = strip_oversized_logos(config, max_bytes=1000)

    assert stripped == ["big", "big_global"]
    logos = {o.id: o.logo for o in stripped_config.sections[0].options}
    assert logos == {"big": None, "small": SMALL, "url": URL}
    assert stripped_config.global_brands[0].logo is None
    assert config.sections[0].options[0].logo == LARGE
