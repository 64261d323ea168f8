"""Tests for S02: Material export (slots -> MTL + texture images)."""

import io
import logging
from pathlib import Path

import pytest
from PIL import Image

from meshexport.core.errors import (
    AllCandidatesFailedError,
    EmptySourceError,
    PixelErrorKind,
    TruncatedSourceError,
    UnsupportedFormatError,
)
from meshexport.core.material import Material, MaterialSlot
from meshexport.core.texture import (
    CanonicalColorBuffer,
    ChannelOrder,
    PixelFormat,
    Texture,
    TextureSourceBuffer,
)
from meshexport.steps.s02_material_export._container_encoders import (
    ContainerFormat,
    encode,
    to_pil_image,
)
from meshexport.steps.s02_material_export._mtl_writer import export_materials
from meshexport.steps.s02_material_export._pixel_normalizer import normalize
from meshexport.steps.s02_material_export._texture_export import TextureExporter
from meshexport.steps.s02_material_export.config import MaterialExportConfig
from meshexport.steps.s02_material_export.contracts import (
    MaterialExportInput,
    MaterialExportOutput,
)
from meshexport.steps.s02_material_export.step import MaterialExportStep
from tests.conftest import make_rgba_texture


def _buffer(width=2, height=2, order=ChannelOrder.RGBA, alpha=255) -> CanonicalColorBuffer:
    data = bytes(v for i in range(width * height) for v in (i, 2 * i, 3 * i, alpha))
    return CanonicalColorBuffer(width, height, order, data)


def _wide_buffer() -> CanonicalColorBuffer:
    # Wider than the 16-bit TGA header fields allow
    return CanonicalColorBuffer(70000, 1, ChannelOrder.RGBA, bytes([1, 2, 3, 255]) * 70000)


def _reject(buffer):
    raise ValueError("forced rejection")


# ── Contract tests ──


class TestMaterialExportContracts:
    def test_config_defaults(self):
        cfg = MaterialExportConfig()
        assert cfg.ambient == [1.0, 1.0, 1.0]
        assert cfg.diffuse == [0.8, 0.8, 0.8]
        assert cfg.specular == [0.5, 0.5, 0.5]
        assert cfg.shininess == 32.0
        assert cfg.illumination_model == 2
        assert cfg.texture_parameter_names[0] == "BaseColor"
        assert cfg.container_formats == ["png", "tga", "bmp"]
        assert cfg.textures_dir == "Textures"

    def test_config_rejects_unknown_container(self):
        with pytest.raises(ValueError):
            MaterialExportConfig(container_formats=["webp"])

    def test_output_defaults(self):
        out = MaterialExportOutput()
        assert out.mtl_path is None
        assert out.num_materials == 0

    def test_input_schema_introspection(self):
        schema = MaterialExportStep.get_input_schema()
        assert "slots" in schema["properties"]


# ── Pixel normalizer ──


class TestPixelNormalizer:
    def test_bgra8_to_rgba(self):
        src = TextureSourceBuffer(1, 1, PixelFormat.BGRA8, bytes([10, 20, 30, 255]))
        out = normalize(src)
        assert out.channel_order is ChannelOrder.RGBA
        assert out.pixel(0, 0) == (30, 20, 10, 255)

    def test_bgra8_to_bgra_is_identity(self):
        data = bytes([10, 20, 30, 40, 50, 60, 70, 80])
        src = TextureSourceBuffer(2, 1, PixelFormat.BGRA8, data)
        assert normalize(src, ChannelOrder.BGRA).data == data

    def test_rgba8_copied(self):
        data = bytes(range(16))
        src = TextureSourceBuffer(2, 2, PixelFormat.RGBA8, data)
        out = normalize(src)
        assert len(out.data) == 16
        assert out.data == data

    def test_gray8_broadcast(self):
        src = TextureSourceBuffer(2, 1, PixelFormat.GRAY8, bytes([7, 200]))
        out = normalize(src)
        assert len(out.data) == 8
        assert out.pixel(0, 0) == (7, 7, 7, 255)
        assert out.pixel(1, 0) == (200, 200, 200, 255)

    def test_unknown_format_read_as_bgra(self):
        src = TextureSourceBuffer(1, 1, PixelFormat.UNKNOWN, bytes([1, 2, 3, 4]))
        assert normalize(src).pixel(0, 0) == (3, 2, 1, 4)

    def test_unknown_format_too_short(self):
        src = TextureSourceBuffer(2, 2, PixelFormat.UNKNOWN, bytes(8))
        with pytest.raises(UnsupportedFormatError) as exc:
            normalize(src)
        assert exc.value.kind is PixelErrorKind.UNSUPPORTED_FORMAT

    def test_empty_source(self):
        with pytest.raises(EmptySourceError):
            normalize(TextureSourceBuffer(2, 2, PixelFormat.RGBA8, b""))

    def test_zero_size_source(self):
        with pytest.raises(EmptySourceError):
            normalize(TextureSourceBuffer(0, 4, PixelFormat.RGBA8, bytes(4)))

    @pytest.mark.parametrize("fmt", [PixelFormat.BGRA8, PixelFormat.RGBA8, PixelFormat.GRAY8])
    def test_truncated_source_fails(self, fmt):
        src = TextureSourceBuffer(4, 4, fmt, bytes(5))
        with pytest.raises(TruncatedSourceError):
            normalize(src)

    def test_truncated_source_padded(self):
        # 1.5 pixels of BGRA data for a 2x2 image
        src = TextureSourceBuffer(2, 2, PixelFormat.BGRA8, bytes([10, 20, 30, 255, 1, 2]))
        out = normalize(src, pad_truncated=True)
        assert len(out.data) == 16
        assert out.pixel(0, 0) == (30, 20, 10, 255)
        assert out.pixel(1, 0) == (0, 0, 0, 0)
        assert out.pixel(1, 1) == (0, 0, 0, 0)

    def test_oversized_source_ignored_tail(self):
        src = TextureSourceBuffer(1, 1, PixelFormat.RGBA8, bytes([1, 2, 3, 4, 9, 9, 9, 9]))
        assert normalize(src).data == bytes([1, 2, 3, 4])


# ── Container encoder chain ──


class TestContainerChain:
    @pytest.mark.parametrize("fmt,pil_name", [
        (ContainerFormat.PNG, "PNG"),
        (ContainerFormat.TGA, "TGA"),
        (ContainerFormat.BMP, "BMP"),
    ])
    def test_lossless_formats_round_pixels(self, fmt, pil_name):
        buffer = _buffer()
        data, chosen = encode(buffer, [fmt])
        assert chosen is fmt
        image = Image.open(io.BytesIO(data))
        assert image.format == pil_name
        assert image.size == (2, 2)
        assert image.convert("RGBA").tobytes() == buffer.data

    def test_bgra_buffer_encodes_true_colors(self):
        rgba = _buffer()
        bgra_data = bytes(
            b for i in range(0, len(rgba.data), 4)
            for b in (rgba.data[i + 2], rgba.data[i + 1], rgba.data[i], rgba.data[i + 3])
        )
        bgra = CanonicalColorBuffer(2, 2, ChannelOrder.BGRA, bgra_data)
        assert to_pil_image(bgra).tobytes() == rgba.data

    def test_first_success_wins(self):
        calls = []

        def _tga(buffer):
            calls.append("tga")
            return b"TGA"

        data, fmt = encode(_buffer(), ["png", "tga"], encoders={ContainerFormat.TGA: _tga})
        assert fmt is ContainerFormat.PNG
        assert data.startswith(b"\x89PNG")
        assert calls == []

    def test_fallback_to_second_candidate(self):
        data, fmt = encode(
            _buffer(),
            [ContainerFormat.PNG, ContainerFormat.TGA],
            encoders={ContainerFormat.PNG: _reject},
        )
        assert fmt is ContainerFormat.TGA
        assert not data.startswith(b"\x89PNG")
        assert Image.open(io.BytesIO(data)).format == "TGA"

    def test_empty_output_counts_as_rejection(self):
        _, fmt = encode(
            _buffer(),
            ["png", "bmp"],
            encoders={ContainerFormat.PNG: lambda buffer: b""},
        )
        assert fmt is ContainerFormat.BMP

    def test_jpeg_rejects_transparency(self):
        with pytest.raises(AllCandidatesFailedError) as exc:
            encode(_buffer(alpha=128), ["jpg"])
        assert "jpg" in exc.value.failures

    def test_jpeg_accepts_opaque(self):
        data, fmt = encode(_buffer(), ["jpg"])
        assert fmt is ContainerFormat.JPEG
        assert Image.open(io.BytesIO(data)).format == "JPEG"

    def test_all_candidates_failed(self):
        with pytest.raises(AllCandidatesFailedError) as exc:
            encode(
                _buffer(),
                ["png", "tga"],
                encoders={ContainerFormat.PNG: _reject, ContainerFormat.TGA: _reject},
            )
        assert set(exc.value.failures) == {"png", "tga"}

    def test_tga_dimension_limit_falls_back(self):
        # TGA stores width/height as 16-bit fields; Pillow fails with struct.error
        data, fmt = encode(_wide_buffer(), ["tga", "png"])
        assert fmt is ContainerFormat.PNG
        assert Image.open(io.BytesIO(data)).size == (70000, 1)

    def test_tga_dimension_limit_recorded(self):
        with pytest.raises(AllCandidatesFailedError) as exc:
            encode(_wide_buffer(), ["tga"])
        assert set(exc.value.failures) == {"tga"}

    def test_unexpected_encoder_exception_is_rejection(self):
        def _crash(buffer):
            raise RuntimeError("encoder crashed")

        _, fmt = encode(_buffer(), ["png", "bmp"], encoders={ContainerFormat.PNG: _crash})
        assert fmt is ContainerFormat.BMP


# ── Texture export unit ──


class TestTextureExporter:
    def test_exports_bound_texture(self, textured_material, output_dir: Path):
        rel = TextureExporter().export(textured_material, output_dir)
        assert rel == "Textures/Base_Color_Map.png"
        written = output_dir / "Textures" / "Base_Color_Map.png"
        assert written.exists()
        assert Image.open(written).size == (2, 2)

    def test_probe_order(self, output_dir: Path):
        material = Material(
            name="m",
            textures={
                "Albedo": make_rgba_texture("albedo"),
                "Diffuse": make_rgba_texture("diffuse"),
            },
        )
        assert TextureExporter().export(material, output_dir) == "Textures/diffuse.png"

    def test_parameter_list_fallback(self, output_dir: Path):
        material = Material(
            name="m",
            textures={"Roughness": make_rgba_texture("rough")},
            parameter_textures=[("Empty", None), ("Mask", make_rgba_texture("mask"))],
        )
        assert TextureExporter().export(material, output_dir) == "Textures/mask.png"

    def test_untextured_material(self, output_dir: Path):
        assert TextureExporter().export(Material(name="plain"), output_dir) is None
        assert not (output_dir / "Textures").exists()

    def test_secondary_source_fallback(self, output_dir: Path):
        texture = Texture(
            name="resident",
            primary=TextureSourceBuffer(1, 1, PixelFormat.RGBA8, b""),
            secondary=TextureSourceBuffer(1, 1, PixelFormat.UNKNOWN, bytes([10, 20, 30, 255])),
        )
        rel = TextureExporter().export(Material("m", {"BaseColor": texture}), output_dir)
        assert rel == "Textures/resident.png"
        image = Image.open(output_dir / "Textures" / "resident.png").convert("RGBA")
        assert image.getpixel((0, 0)) == (30, 20, 10, 255)

    def test_secondary_too_small_is_unavailable(self, output_dir: Path, caplog):
        texture = Texture(
            name="tiny",
            secondary=TextureSourceBuffer(2, 2, PixelFormat.BGRA8, bytes(4)),
        )
        with caplog.at_level(logging.WARNING):
            rel = TextureExporter().export(Material("m", {"BaseColor": texture}), output_dir)
        assert rel is None
        assert "no usable pixel data" in caplog.text

    def test_secondary_disabled(self, output_dir: Path):
        texture = Texture(
            name="resident",
            secondary=TextureSourceBuffer(1, 1, PixelFormat.BGRA8, bytes(4)),
        )
        cfg = MaterialExportConfig(use_secondary_source=False)
        assert TextureExporter(cfg).export(Material("m", {"BaseColor": texture}), output_dir) is None

    def test_truncated_texture_skipped(self, output_dir: Path):
        texture = Texture(
            name="short",
            primary=TextureSourceBuffer(4, 4, PixelFormat.RGBA8, bytes(10)),
        )
        assert TextureExporter().export(Material("m", {"BaseColor": texture}), output_dir) is None

    def test_truncated_texture_padded_when_enabled(self, output_dir: Path):
        texture = Texture(
            name="short",
            primary=TextureSourceBuffer(4, 4, PixelFormat.RGBA8, bytes(10)),
        )
        cfg = MaterialExportConfig(pad_truncated_textures=True)
        rel = TextureExporter(cfg).export(Material("m", {"BaseColor": texture}), output_dir)
        assert rel == "Textures/short.png"

    def test_encoder_fallback_extension(self, textured_material, output_dir: Path):
        exporter = TextureExporter(encoders={ContainerFormat.PNG: _reject})
        rel = exporter.export(textured_material, output_dir)
        assert rel == "Textures/Base_Color_Map.tga"
        assert not (output_dir / "Textures" / "Base_Color_Map.png").exists()

    def test_all_encoders_fail(self, textured_material, output_dir: Path):
        cfg = MaterialExportConfig(container_formats=["png"])
        exporter = TextureExporter(cfg, encoders={ContainerFormat.PNG: _reject})
        assert exporter.export(textured_material, output_dir) is None

    def test_existing_textures_dir_is_reused(self, textured_material, output_dir: Path):
        (output_dir / "Textures").mkdir()
        assert TextureExporter().export(textured_material, output_dir) is not None

    def test_shared_texture_written_once(self, output_dir: Path):
        shared = make_rgba_texture("shared")
        calls = []

        def _png(buffer):
            calls.append(1)
            return b"png-bytes"

        exporter = TextureExporter(encoders={ContainerFormat.PNG: _png})
        a = exporter.export(Material("a", {"BaseColor": shared}), output_dir)
        b = exporter.export(Material("b", {"Diffuse": shared}), output_dir)
        assert a == b == "Textures/shared.png"
        assert len(calls) == 1

    def test_custom_textures_dir(self, textured_material, output_dir: Path):
        cfg = MaterialExportConfig(textures_dir="maps")
        rel = TextureExporter(cfg).export(textured_material, output_dir)
        assert rel == "maps/Base_Color_Map.png"
        assert (output_dir / "maps" / "Base_Color_Map.png").exists()

    def test_clashing_sanitized_names_get_distinct_files(self, output_dir: Path, caplog):
        red = Texture("Base Color", TextureSourceBuffer(1, 1, PixelFormat.RGBA8, bytes([255, 0, 0, 255])))
        blue = Texture("Base/Color", TextureSourceBuffer(1, 1, PixelFormat.RGBA8, bytes([0, 0, 255, 255])))
        exporter = TextureExporter()
        with caplog.at_level(logging.WARNING):
            red_path = exporter.export(Material("red", {"BaseColor": red}), output_dir)
            blue_path = exporter.export(Material("blue", {"BaseColor": blue}), output_dir)

        assert red_path == "Textures/Base_Color.png"
        assert blue_path == "Textures/Base_Color_1.png"
        assert "already used" in caplog.text
        red_image = Image.open(output_dir / red_path).convert("RGBA")
        blue_image = Image.open(output_dir / blue_path).convert("RGBA")
        assert red_image.getpixel((0, 0)) == (255, 0, 0, 255)
        assert blue_image.getpixel((0, 0)) == (0, 0, 255, 255)

    def test_unexpected_error_leaves_material_untextured(
        self, textured_material, output_dir: Path, monkeypatch, caplog
    ):
        from meshexport.steps.s02_material_export import _texture_export

        def _crash(*args, **kwargs):
            raise RuntimeError("decoder crashed")

        monkeypatch.setattr(_texture_export, "normalize", _crash)
        with caplog.at_level(logging.ERROR):
            assert TextureExporter().export(textured_material, output_dir) is None
        assert "decoder crashed" in caplog.text


# ── MTL writer ──


class TestExportMaterials:
    def test_untextured_block(self, output_dir: Path):
        library = export_materials(
            [MaterialSlot(0, Material("cube_material"))], output_dir, "cube"
        )
        assert library.mtl_path == output_dir / "cube.mtl"
        lines = library.mtl_path.read_text().splitlines()
        assert lines[:7] == [
            "newmtl cube_material",
            "Ka 1.0 1.0 1.0",
            "Kd 0.8 0.8 0.8",
            "Ks 0.5 0.5 0.5",
            "Ns 32.0",
            "d 1.0",
            "illum 2",
        ]
        assert "map_Kd" not in library.text

    def test_textured_block_sanitized(self, textured_material, output_dir: Path):
        library = export_materials([MaterialSlot(0, textured_material)], output_dir, "scene")
        assert "newmtl Metal_Rough_01" in library.text
        assert "map_Kd Textures/Base_Color_Map.png" in library.text
        assert library.texture_paths == {"Metal_Rough_01": "Textures/Base_Color_Map.png"}

    def test_null_slots_skipped(self, output_dir: Path, caplog):
        slots = [
            MaterialSlot(0, Material("a")),
            MaterialSlot(1, None),
            MaterialSlot(2, Material("c")),
        ]
        with caplog.at_level(logging.WARNING):
            library = export_materials(slots, output_dir, "x")
        assert library.text.count("newmtl") == 2
        assert library.skipped_slots == [1]
        assert "Material 1 is null" in caplog.text

    def test_broken_texture_does_not_affect_others(self, output_dir: Path):
        broken = Texture(name="broken", primary=TextureSourceBuffer(8, 8, PixelFormat.RGBA8, bytes(3)))
        slots = [
            MaterialSlot(0, Material("good", {"BaseColor": make_rgba_texture("good_tex")})),
            MaterialSlot(1, Material("bad", {"BaseColor": broken})),
        ]
        library = export_materials(slots, output_dir, "x")
        assert library.text.count("newmtl") == 2
        assert library.text.count("map_Kd") == 1
        assert library.texture_paths == {"good": "Textures/good_tex.png"}

    def test_custom_constants(self, output_dir: Path):
        cfg = MaterialExportConfig(diffuse=[0.25, 0.5, 1.0], shininess=10.0, illumination_model=1)
        library = export_materials([MaterialSlot(0, Material("m"))], output_dir, "x", config=cfg)
        assert "Kd 0.25 0.5 1.0" in library.text
        assert "Ns 10.0" in library.text
        assert "illum 1" in library.text

    def test_write_failure_is_not_raised(self, tmp_path: Path, caplog):
        missing_dir = tmp_path / "does_not_exist"
        with caplog.at_level(logging.ERROR):
            library = export_materials([MaterialSlot(0, Material("m"))], missing_dir, "x")
        assert library.mtl_path is None
        assert "newmtl m" in library.text
        assert "Failed to save MTL file" in caplog.text


# ── Step tests ──


class TestMaterialExportStep:
    def test_execute(self, textured_material, output_dir: Path):
        step = MaterialExportStep(config=MaterialExportConfig())
        out = step.execute(MaterialExportInput(
            slots=[MaterialSlot(0, textured_material), MaterialSlot(1, None)],
            output_dir=output_dir,
            base_name="scene",
        ))
        assert out.mtl_path == output_dir / "scene.mtl"
        assert out.num_materials == 1
        assert out.num_textures == 1
        assert out.skipped_slots == [1]

    def test_empty_base_name_rejected(self, output_dir: Path):
        step = MaterialExportStep(config=MaterialExportConfig())
        with pytest.raises(ValueError):
            step.execute(MaterialExportInput(slots=[], output_dir=output_dir, base_name=""))
