"""
Per-instance column value holders.
"""
import typing


class Attribute(object):
    """
    Holds the current value of a single column on a model instance, and whether it has changed
    since it was last saved or loaded.

    An attribute is dirty when it is created, since a new value has not been written yet.
    """
    __slots__ = ("name", "_value", "is_dirty")

    def __init__(self, name: str, value: typing.Any = None):
        #: The property name of the column this attribute holds.
        self.name = name

        self._value = value

        #: If this attribute has changed since the last save.
        self.is_dirty = True

    def __repr__(self):
        return "<Attribute name={} value={!r} dirty={}>".format(self.name, self._value,
                                                                self.is_dirty)

    @property
    def value(self) -> typing.Any:
        return self._value

    @value.setter
    def value(self, value: typing.Any):
        if value != self._value:
            self.is_dirty = True
        self._value = value

    def clean(self):
        """
        Marks this attribute as not dirty.
        """
        self.is_dirty = False
