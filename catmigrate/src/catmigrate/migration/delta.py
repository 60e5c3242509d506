"""Delta migration: pulling an instance back along a plain functor."""

import time

from catmigrate.config.logging import get_logger
from catmigrate.errors import SchemaMismatch
from catmigrate.instance.instance import Instance
from catmigrate.mapping.models import Functor
from catmigrate.mapping.validators import validate_functor

logger = get_logger(__name__)


class DeltaMigration:
    """
    Precomposition with a functor ``F: D -> C``.

    Turns an instance ``X`` over ``C`` into the instance over ``D`` with
    ``Y(d) = X(F(d))`` (same row ids) and ``Y(m) = X(F(m))``. The functor is
    validated once, when the migration is constructed.
    """

    def __init__(self, functor: Functor):
        self.functor = validate_functor(functor)

    @property
    def dom(self):
        return self.functor.dom

    @property
    def codom(self):
        return self.functor.codom

    def __call__(self, instance: Instance) -> Instance:
        """
        Migrate ``instance`` into a fresh instance over ``F.dom``.

        Args:
            instance: Instance over ``F.codom``

        Returns:
            New instance over ``F.dom``
        """
        if instance.schema != self.codom:
            raise SchemaMismatch(
                f"Delta migration expects an instance of '{self.codom.name}', "
                f"got '{instance.schema.name}'"
            )
        start = time.time()
        counts = {ob: instance.nparts(self.functor.ob_map[ob]) for ob in self.dom.obs}
        columns = {}
        for gen in self.dom.homs + self.dom.attrs:
            path = self.functor.hom_map[gen.name]
            columns[gen.name] = instance.evaluate(path).tolist()
            logger.debug(f"  {gen.name} := {path} ({len(columns[gen.name])} rows)")

        result = Instance.from_columns(self.dom, counts, columns)
        logger.info(
            f"Delta migration {self.codom.name} -> {self.dom.name} completed: "
            f"{result} in {time.time() - start:.3f}s"
        )
        return result

    def migrate_into(self, target: Instance, instance: Instance) -> Instance:
        """
        Append the migrated rows to ``target`` as a disjoint union.

        The fresh result is built completely before ``target`` changes.

        Args:
            target: Existing instance over ``F.dom``, mutated in place
            instance: Instance over ``F.codom``

        Returns:
            ``target``
        """
        if target.schema != self.dom:
            raise SchemaMismatch(
                f"Cannot merge an instance of '{self.dom.name}' into one of '{target.schema.name}'"
            )
        result = self(instance)
        offsets = target.add_instance(result)
        logger.debug(f"Merged delta result into existing instance at offsets {offsets}")
        return target
