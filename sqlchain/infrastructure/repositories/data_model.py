"""
Data Model - Active-record style mapper over the query builder.

Subclasses name a table and get finders, counters and CRUD methods that
build their statements with ``QueryBuilder``. Row values live in an
attribute store; computed or transformed properties are declared once in
a per-class accessor table.

Example:
    class Post(DataModel):
        TABLE = "posts"
        primary_key = "ID"
        properties = ("ID", "post_title", "post_status")
        keywords = ("post_title", "post_content")

        @alias_getter("title")
        def _get_title(self):
            return self.post_title

    Post.bind(driver, hooks)
    drafts = Post.where({"post_status": "draft", "limit": 10})
"""

# Standard library imports
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, ClassVar

# Local imports
from sqlchain.application.interfaces.driver import IDatabaseDriver
from sqlchain.domain.exceptions import InvalidArgumentError, QueryBuilderError
from sqlchain.infrastructure.database.query_builder import QueryBuilder
from sqlchain.infrastructure.hooks import HookRegistry
from sqlchain.infrastructure.security.input_sanitizer import InputSanitizer

logger = logging.getLogger(__name__)

_GETTER_MARK = "__alias_getter__"
_SETTER_MARK = "__alias_setter__"

# Keys of ``where()`` arguments that configure the query instead of filtering
_QUERY_ARGUMENTS = ("limit", "offset", "keywords", "keywords_separator", "order_by", "order")


@dataclass(frozen=True)
class Accessor:
    """Getter/setter pair of one alias property."""

    getter: Callable[[Any], Any] | None = None
    setter: Callable[[Any, Any], None] | None = None


def alias_getter(name: str) -> Callable[[Callable[[Any], Any]], Callable[[Any], Any]]:
    """Mark a method as the getter of alias property ``name``."""

    def decorator(func: Callable[[Any], Any]) -> Callable[[Any], Any]:
        setattr(func, _GETTER_MARK, name)
        return func

    return decorator


def alias_setter(name: str) -> Callable[[Callable[[Any, Any], None]], Callable[[Any, Any], None]]:
    """Mark a method as the setter of alias property ``name``."""

    def decorator(func: Callable[[Any, Any], None]) -> Callable[[Any, Any], None]:
        setattr(func, _SETTER_MARK, name)
        return func

    return decorator


def maybe_decode_json(data: Any) -> Any:
    """Decode JSON text, returning the input unchanged when it is not JSON."""
    if data is None:
        return None
    try:
        return json.loads(data)
    except (TypeError, ValueError):
        return data


def _clean(value: Any) -> Any:
    if isinstance(value, DataModel):
        return type(value).to_dict(value)
    if isinstance(value, Mapping):
        return {key: _clean(item) for key, item in value.items() if item is not None}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_clean(item) for item in value if item is not None]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


class DataModel:
    """
    Base class for table-backed models.

    Attributes:
        TABLE: Table name without prefix
        primary_key: Primary key column
        properties: Fields included by ``to_dict``/``to_json``
        keywords: Columns searched by the ``keywords`` argument of ``where``
    """

    TABLE: ClassVar[str] = ""
    primary_key: ClassVar[str] = "ID"
    properties: ClassVar[tuple[str, ...]] = ()
    keywords: ClassVar[tuple[str, ...]] = ()

    _bound_driver: ClassVar[IDatabaseDriver | None] = None
    _bound_hooks: ClassVar[HookRegistry | None] = None
    _accessors: ClassVar[dict[str, Accessor]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.TABLE:
            InputSanitizer.sanitize_sql_identifier(cls.TABLE)

        getters: dict[str, Callable[[Any], Any]] = {}
        setters: dict[str, Callable[[Any, Any], None]] = {}
        for klass in reversed(cls.__mro__):
            for member in vars(klass).values():
                if hasattr(member, _GETTER_MARK):
                    getters[getattr(member, _GETTER_MARK)] = member
                if hasattr(member, _SETTER_MARK):
                    setters[getattr(member, _SETTER_MARK)] = member

        accessors = dict(cls._accessors)
        for name in getters.keys() | setters.keys():
            inherited = accessors.get(name, Accessor())
            accessors[name] = Accessor(
                getters.get(name, inherited.getter), setters.get(name, inherited.setter)
            )
        cls._accessors = accessors

    def __init__(
        self,
        attributes: Mapping[str, Any] | None = None,
        id: Any = None,
        driver: IDatabaseDriver | None = None,
        hooks: HookRegistry | None = None,
    ) -> None:
        """
        Initialize a model.

        Args:
            attributes: Initial attribute values
            id: Primary key value
            driver: Driver for this instance; defaults to the class binding
            hooks: Hook registry for this instance; defaults to the class binding
        """
        object.__setattr__(self, "_attributes", dict(attributes or {}))
        object.__setattr__(self, "_driver", driver)
        object.__setattr__(self, "_hooks", hooks)
        if id:
            self._attributes[type(self).primary_key] = id

    # ------------------------------------------------------------------
    # Binding and accessor table
    # ------------------------------------------------------------------

    @classmethod
    def bind(cls, driver: IDatabaseDriver, hooks: HookRegistry | None = None) -> None:
        """
        Bind a driver and hook registry to this model class and its subclasses.

        Args:
            driver: Database driver
            hooks: Hook registry; a fresh registry when omitted
        """
        cls._bound_driver = driver
        cls._bound_hooks = hooks if hooks is not None else HookRegistry()

    @classmethod
    def register_alias(
        cls,
        name: str,
        getter: Callable[[Any], Any] | None = None,
        setter: Callable[[Any, Any], None] | None = None,
    ) -> None:
        """Add or replace an alias property on this class."""
        cls._accessors = {**cls._accessors, name: Accessor(getter, setter)}

    @property
    def driver(self) -> IDatabaseDriver:
        return self._resolve_driver()

    @property
    def hooks(self) -> HookRegistry:
        return self._resolve_hooks()

    @property
    def attributes(self) -> dict[str, Any]:
        return self._attributes

    def _resolve_driver(self) -> IDatabaseDriver:
        driver = self._driver or type(self)._bound_driver
        if driver is None:
            raise QueryBuilderError(f"No database driver bound to {type(self).__name__}")
        return driver

    def _resolve_hooks(self) -> HookRegistry:
        if self._hooks is not None:
            return self._hooks
        if type(self)._bound_hooks is None:
            object.__setattr__(self, "_hooks", HookRegistry())
            return self._hooks
        return type(self)._bound_hooks

    # Stored columns shadow class members of the same name (``count``,
    # ``update``, ``driver``...), so instance methods reach class members
    # through ``type(self)`` and the private resolvers.
    def __getattribute__(self, name: str) -> Any:
        if not name.startswith("_"):
            attributes = object.__getattribute__(self, "_attributes")
            if name in attributes:
                return attributes[name]
        return object.__getattribute__(self, name)

    def __getattr__(self, name: str) -> Any:
        # Only reached when regular attribute lookup fails
        if name.startswith("_"):
            raise AttributeError(name)
        accessor = type(self)._accessors.get(name)
        if accessor is not None and accessor.getter is not None:
            return accessor.getter(self)
        return None

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return
        accessor = type(self)._accessors.get(name)
        if accessor is not None and accessor.setter is not None:
            accessor.setter(self, value)
        else:
            self._attributes[name] = value

    @alias_getter("tablename")
    def _get_tablename(self) -> str:
        return self._table_name()

    # ------------------------------------------------------------------
    # Class-level queries
    # ------------------------------------------------------------------

    @classmethod
    def _new_builder(cls, suffix: str) -> QueryBuilder:
        model = cls()
        return QueryBuilder(model._resolve_driver(), f"{cls.TABLE}_{suffix}", model._resolve_hooks())

    @classmethod
    def _aliased_table(cls, driver: IDatabaseDriver) -> str:
        return f"{cls.TABLE} as {driver.quote_identifier(cls.TABLE)}"

    @classmethod
    def find(cls, id: Any) -> "DataModel | None":
        """Load the model with the given primary key."""
        return cls(id=id).load()

    @classmethod
    def find_where(cls, args: Mapping[str, Any]) -> "DataModel | None":
        return cls().load_where(args)

    @classmethod
    def insert(cls, attributes: Mapping[str, Any]) -> "DataModel | None":
        """
        Create and save a model.

        Returns:
            The saved model, or None if the insert failed
        """
        model = cls(attributes)
        return model if model.save(force_insert=True) else None

    @classmethod
    def delete_where(cls, args: Mapping[str, Any]) -> Any:
        return cls()._delete_where(args)

    @classmethod
    def where(cls, args: Mapping[str, Any] | None = None) -> list["DataModel"]:
        """
        Find models matching the arguments.

        Besides column conditions, ``args`` may carry ``limit``, ``offset``,
        ``keywords``, ``keywords_separator``, ``order_by`` and ``order``.

        Returns:
            Matching models
        """
        args = dict(args or {})
        options = {key: args.pop(key) for key in _QUERY_ARGUMENTS if key in args}
        limit = options.get("limit")

        builder = cls._new_builder("where")
        rows = (
            builder.select("*")
            .from_table(cls._aliased_table(builder.driver))
            .keywords(options.get("keywords"), cls.keywords, options.get("keywords_separator", " "))
            .where(args)
            .order_by(options.get("order_by"), options.get("order", "ASC"))
            .limit(InputSanitizer.absint(limit) if limit is not None else None)
            .offset(InputSanitizer.absint(options.get("offset", 0)))
            .get()
        )
        return [cls(row) for row in rows]

    @classmethod
    def count(cls, args: Mapping[str, Any] | None = None) -> int:
        """Count models matching the arguments (paging and ordering are ignored)."""
        args = dict(args or {})
        options = {key: args.pop(key) for key in _QUERY_ARGUMENTS if key in args}
        keywords = options.get("keywords")
        if keywords is not None:
            keywords = InputSanitizer.sanitize_text_field(keywords)

        builder = cls._new_builder("count")
        return (
            builder.from_table(cls._aliased_table(builder.driver))
            .keywords(keywords, cls.keywords, options.get("keywords_separator", " "))
            .where(args)
            .count()
        )

    @classmethod
    def builder(cls) -> QueryBuilder:
        """Return a builder whose FROM target is this model's table."""
        builder = cls._new_builder("custom")
        return builder.from_table(cls._aliased_table(builder.driver))

    @classmethod
    def all(cls) -> list["DataModel"]:
        builder = cls._new_builder("all")
        rows = builder.select("*").from_table(cls._aliased_table(builder.driver)).get()
        return [cls(row) for row in rows]

    @classmethod
    def update_all(cls, set: Mapping[str, Any], where: Mapping[str, Any] | None = None) -> Any:
        """Update every row matching ``where``."""
        return cls._new_builder("static_update").from_table(cls.TABLE).set(set).where(where).update()

    # ------------------------------------------------------------------
    # Instance operations
    # ------------------------------------------------------------------

    def table_name(self) -> str:
        return self._table_name()

    def _table_name(self) -> str:
        return f"{self._resolve_driver().table_prefix or ''}{type(self).TABLE}"

    def protected_properties(self) -> list[str]:
        """Fields never written by ``save``/``update``; filterable through hooks."""
        return self._resolve_hooks().apply(
            f"data_model_{type(self).TABLE}_excluded_save_fields",
            [type(self).primary_key, "created_at", "updated_at"],
            self._table_name(),
        )

    def _writable(self, data: Mapping[str, Any]) -> dict[str, Any]:
        protected = type(self).protected_properties(self)
        return {key: value for key, value in data.items() if key not in protected}

    def save(self, force_insert: bool = False) -> Any:
        """
        Insert or update this model.

        Updates when the primary key is set (unless ``force_insert``),
        inserts otherwise. Inserts store the generated key and stamp
        ``created_at``/``updated_at``.

        Returns:
            Driver success indicator
        """
        model = type(self)
        driver = self._resolve_driver()
        hooks = self._resolve_hooks()
        key_value = self._attributes.get(model.primary_key)

        if not force_insert and key_value:
            data = self._writable(self._attributes)
            success = driver.update(self._table_name(), data, {model.primary_key: key_value}) if data else False
            if success:
                hooks.do(f"data_model_{model.TABLE}_updated", self)
        else:
            success = driver.insert(self._table_name(), self._writable(self._attributes))
            if success is not False:
                self._attributes[model.primary_key] = driver.last_insert_id
                now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
                self._attributes["created_at"] = now
                self._attributes["updated_at"] = now
            if success:
                hooks.do(f"data_model_{model.TABLE}_inserted", self)

        if success:
            hooks.do(f"data_model_{model.TABLE}_save", self)
        else:
            logger.warning(f"Failed to save {model.__name__} in {self._table_name()}")

        return success

    def load(self) -> "DataModel | None":
        """Reload attributes by primary key; None when the row is missing."""
        model = type(self)
        builder = QueryBuilder(self._resolve_driver(), f"{model.TABLE}_load", self._resolve_hooks())
        row = (
            builder.select("*")
            .from_table(model.TABLE)
            .where({model.primary_key: self._attributes.get(model.primary_key)})
            .first()
        )
        return self._loaded(row)

    def load_where(self, args: Mapping[str, Any]) -> "DataModel | None":
        """
        Load the first row matching the arguments.

        Raises:
            InvalidArgumentError: If the arguments are not a mapping
        """

        if not args:
            return None
        if not isinstance(args, Mapping):
            raise InvalidArgumentError(
                "Arguments parameter must be a mapping.", InvalidArgumentError.MODEL_ARGS, args
            )

        model = type(self)
        builder = QueryBuilder(self._resolve_driver(), f"{model.TABLE}_load_where", self._resolve_hooks())
        row = builder.select("*").from_table(model.TABLE).where(args).first()
        return self._loaded(row)

    def _loaded(self, row: Mapping[str, Any] | None) -> "DataModel | None":
        object.__setattr__(self, "_attributes", dict(row or {}))
        if not self._attributes:
            return None
        return self._resolve_hooks().apply(f"data_model_{type(self).TABLE}", self)

    def delete(self) -> Any:
        """Delete this model's row; False when it has no primary key."""
        model = type(self)
        key_value = self._attributes.get(model.primary_key)
        if not key_value:
            return False
        deleted = self._resolve_driver().delete(self._table_name(), {model.primary_key: key_value})
        if deleted:
            self._resolve_hooks().do(f"data_model_{model.TABLE}_deleted", self)
        return deleted

    def update(self, data: Mapping[str, Any] | None = None) -> Any:
        """
        Update the given fields, then copy them onto the model.

        Without data this is :meth:`save`. Copied fields land in the
        attribute store, or go through an alias setter when one exists.
        """
        model = type(self)
        if not data or not isinstance(data, Mapping):
            return model.save(self)

        success: Any = False
        key_value = self._attributes.get(model.primary_key)
        writable = self._writable(data)
        if key_value and writable:
            success = self._resolve_driver().update(self._table_name(), writable, {model.primary_key: key_value})
            if success:
                for key, value in data.items():
                    setattr(self, key, value)
                self._resolve_hooks().do(f"data_model_{model.TABLE}_updated", self)

        return success

    def _delete_where(self, args: Mapping[str, Any]) -> Any:
        return self._resolve_driver().delete(self._table_name(), args)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Non-null declared properties, with nested models converted."""
        output = {}
        for name in type(self).properties:
            value = getattr(self, name)
            if value is not None:
                output[name] = _clean(value)
        return output

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(type(self).to_dict(self), default=str, **kwargs)

    def __str__(self) -> str:
        return type(self).to_json(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._attributes!r})"
