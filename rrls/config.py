"""Module configuration: YAML files validated by pydantic models.

Example (conf/RRLSestimator.yml):

    name: RRLSestimator
    d_in: 2
    t: 1
    numRF: 50
    mappingType: cos
    lambda: 1.0
    rff_seed: 7
    pretrain: true
    pretrain_file: icubdyn.dat
    n_pretr: 100

Keys use the module's historical names where they exist (numRF, mappingType,
lambda); the snake_case field names are accepted as well.
"""
from __future__ import annotations

import os
from typing import List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, PrivateAttr, ValidationError, field_validator, model_validator

from .errors import ConfigInvalid
from .rff import ProjectionSet, RFMapper, draw_projections, resolve_mapping


class MapperConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='forbid', frozen=True)

    name: str = "RFmapper"
    verbose: bool = False
    d_in: PositiveInt
    t: PositiveInt
    num_rf: Optional[PositiveInt] = Field(None, alias='numRF')
    mapping: str = Field('cos', alias='mappingType')
    projections: Optional[List[List[float]]] = Field(None, alias='proj')
    bias: Optional[List[float]] = None
    rff_seed: Optional[int] = None
    rff_sigma: float = Field(1.0, gt=0)
    rff_kernel: str = 'rbf'
    queue_size: PositiveInt = 64

    _base_dir: str = PrivateAttr(default='.')

    @field_validator('mapping', mode='before')
    @classmethod
    def _resolve_mapping(cls, v):
        return resolve_mapping(v)

    @property
    def use_mapper(self) -> bool:
        return True

    def _check_projections(self):
        if self.num_rf is None:
            raise ValueError("numRF is required when the mapper stage is active")
        if self.projections is not None:
            if len(self.projections) != self.num_rf:
                raise ValueError(f"Inconsistent number of projections: {len(self.projections)} != numRF={self.num_rf}")
            widths = {len(p) for p in self.projections}
            if widths != {self.d_in}:
                raise ValueError(f"Every projection must have d_in={self.d_in} entries, got widths {sorted(widths)}")
            if self.bias is not None and len(self.bias) != self.num_rf:
                raise ValueError(f"Got {len(self.bias)} phases for numRF={self.num_rf} projections")
        elif self.rff_seed is None:
            raise ValueError("Projections list missing (give 'proj' or an 'rff_seed' to draw them)")

    @model_validator(mode='after')
    def _validate_stage(self):
        if self.use_mapper:
            self._check_projections()
        return self

    # -------------------------------- builders --------------------------------
    def build_projections(self) -> ProjectionSet:
        if self.projections is not None:
            return ProjectionSet(self.projections, self.bias)
        return draw_projections(self.d_in, self.num_rf, sigma=self.rff_sigma,
                                kernel=self.rff_kernel, random_state=self.rff_seed)

    def build_mapper(self) -> Optional[RFMapper]:
        if not self.use_mapper:
            return None
        return RFMapper(self.build_projections(), self.mapping)

    @property
    def feature_dim(self) -> int:
        if not self.use_mapper:
            return self.d_in
        return 2 * self.num_rf if self.mapping == 'cossin' else self.num_rf

    @classmethod
    def from_dict(cls, raw, base_dir='.'):
        try:
            cfg = cls(**(raw or {}))
        except ValidationError as e:
            raise ConfigInvalid(f"Invalid {cls.__name__}: {e}") from e
        cfg._base_dir = os.path.abspath(base_dir)
        return cfg


class RRLSConfig(MapperConfig):
    name: str = "RRLSestimator"
    mapper: bool = True
    lam: float = Field(1.0, alias='lambda')
    perf: str = 'nMSE'
    pretrain: bool = False
    pretrain_file: str = 'icubdyn.dat'
    n_pretr: PositiveInt = 2
    pretrain_fatal: bool = False

    @field_validator('lam')
    @classmethod
    def _positive_lam(cls, v):
        if not v > 0:
            raise ValueError(f"lambda must be > 0, got {v}")
        return v

    @property
    def use_mapper(self) -> bool:
        return self.mapper

    def resolve_pretrain_path(self) -> str:
        """data/<file> next to the config file first, then the path as given."""
        if os.path.isabs(self.pretrain_file):
            return self.pretrain_file
        for cand in (os.path.join(self._base_dir, 'data', self.pretrain_file),
                     os.path.join(self._base_dir, self.pretrain_file)):
            if os.path.isfile(cand):
                return cand
        return self.pretrain_file


def normalize_keys(cls, raw):
    """Map aliased keys (numRF, lambda, ...) onto field names so later keys override earlier ones."""
    alias_to_name = {f.alias: name for name, f in cls.model_fields.items() if f.alias}
    return {alias_to_name.get(k, k): v for k, v in raw.items()}


def load_config(path, cls=RRLSConfig, overrides=None):
    """Load a YAML config file into `cls`; `overrides` (dict) wins over file values."""
    if not os.path.exists(path):
        raise ConfigInvalid(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigInvalid(f"Cannot parse {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigInvalid(f"{path}: top level must be a mapping")
    raw = normalize_keys(cls, raw)
    raw.update(normalize_keys(cls, {k: v for k, v in (overrides or {}).items() if v is not None}))
    return cls.from_dict(raw, base_dir=os.path.dirname(os.path.abspath(path)))


__all__ = ["MapperConfig", "RRLSConfig", "load_config", "normalize_keys"]
