"""
Tests dirty tracking.
"""
from asyncentity.orm.schema.attribute import Attribute


def test_attribute_is_constructed_dirty():
    attribute = Attribute("name", "ginger")
    assert attribute.is_dirty
    assert attribute.value == "ginger"


def test_setting_same_value_keeps_clean():
    attribute = Attribute("name", "ginger")
    attribute.clean()
    attribute.value = "ginger"
    assert not attribute.is_dirty


def test_setting_new_value_marks_dirty():
    attribute = Attribute("name", "ginger")
    attribute.clean()
    attribute.value = "bellette"
    assert attribute.is_dirty
    assert attribute.value == "bellette"


def test_setting_same_value_does_not_clean():
    attribute = Attribute("name", "ginger")
    attribute.value = "ginger"
    assert attribute.is_dirty
