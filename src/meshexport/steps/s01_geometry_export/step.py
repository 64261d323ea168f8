"""Step 01: Geometry export, MeshDescription -> Wavefront OBJ.

Encodes the merged mesh into OBJ text (Y-up, 1-based indices, faces grouped
per material slot) and writes it next to the companion .mtl it references.
"""

from __future__ import annotations

from typing import ClassVar

from meshexport.core.mesh import validate_topology
from meshexport.core.step_base import BaseStep
from meshexport.utils.io import ensure_dir, write_text
from .config import GeometryExportConfig
from .contracts import GeometryExportInput, GeometryExportOutput


class GeometryExportStep(
    BaseStep[GeometryExportInput, GeometryExportOutput, GeometryExportConfig]
):
    name: ClassVar[str] = "geometry_export"
    input_type: ClassVar = GeometryExportInput
    output_type: ClassVar = GeometryExportOutput
    config_type: ClassVar = GeometryExportConfig

    def validate_inputs(self, inputs: GeometryExportInput) -> bool:
        validate_topology(inputs.mesh, num_slots=len(inputs.material_names))
        if inputs.obj_path.suffix.lower() != ".obj":
            self.log.error(f"Expected .obj output path, got: {inputs.obj_path}")
            return False
        return True

    def run(self, inputs: GeometryExportInput) -> GeometryExportOutput:
        from ._obj_encoder import encode_geometry

        mtl_file_name = f"{inputs.obj_path.stem}.mtl"
        encoded = encode_geometry(
            inputs.mesh,
            inputs.material_names,
            mtl_file_name,
            config=self.config,
            log=self.log,
        )

        ensure_dir(inputs.obj_path.parent)
        write_text(inputs.obj_path, encoded.text)

        size_kb = inputs.obj_path.stat().st_size / 1024
        self.log.info(
            f"OBJ exported: {inputs.obj_path} ({size_kb:.1f} KB, "
            f"{encoded.num_vertices} vertices, {encoded.num_faces} faces)"
        )

        return GeometryExportOutput(
            obj_path=inputs.obj_path,
            mtl_file_name=mtl_file_name,
            num_vertices=encoded.num_vertices,
            num_vertex_instances=encoded.num_vertex_instances,
            num_faces=encoded.num_faces,
            faces_per_material=encoded.faces_per_material,
        )
