"""Tests for django-barcodes models and scope normalization."""
import pytest
from django.db import IntegrityError

from django_barcodes.context import BarcodeContext
from django_barcodes.models import CodeRecord, CodeStatus, FormatConfig, Lot


class TestBarcodeContext:
    """Test suite for BarcodeContext.normalize."""

    def test_none_is_global(self):
        context = BarcodeContext.normalize(None)
        assert context.is_global
        assert str(context) == 'global'

    def test_precedence(self):
        """organisation > structure > group."""
        assert BarcodeContext.normalize((1, 2, 3)) == BarcodeContext(organisation_id='1')
        assert BarcodeContext.normalize((None, 2, 3)) == BarcodeContext(structure_id='2')
        assert BarcodeContext.normalize({'group_id': 'g-1'}) == BarcodeContext(group_id='g-1')

    def test_normalizes_existing_context(self):
        context = BarcodeContext(organisation_id='1', group_id='9')
        assert BarcodeContext.normalize(context) == BarcodeContext(organisation_id='1')

    def test_as_filter(self):
        assert BarcodeContext.normalize({'structure_id': 5}).as_filter() == {
            'organisation_id': '',
            'structure_id': '5',
            'group_id': '',
        }


@pytest.mark.django_db
class TestFormatConfig:

    def test_render(self):
        config = FormatConfig.objects.create(module='disc', prefix='DSQ')
        assert config.render(12) == 'DSQ00000012'

    def test_one_config_per_context(self):
        """(module, organisation, structure, group) is unique."""
        FormatConfig.objects.create(module='game', prefix='JEU')

        with pytest.raises(IntegrityError):
            FormatConfig.objects.create(module='game', prefix='JX')


@pytest.mark.django_db
class TestCodeRecord:

    def test_code_unique_per_module(self):
        CodeRecord.objects.create(module='game', code='JEU00000001')

        with pytest.raises(IntegrityError):
            CodeRecord.objects.create(module='game', code='JEU00000001')

    def test_code_unique_ignoring_case(self):
        """A lowercase copy of an existing code is a duplicate."""
        CodeRecord.objects.create(module='game', code='JEU00000001')

        with pytest.raises(IntegrityError):
            CodeRecord.objects.create(module='game', code='jeu00000001')

    def test_same_code_in_two_modules(self):
        CodeRecord.objects.create(module='game', code='X1')
        CodeRecord.objects.create(module='book', code='X1')

        assert CodeRecord.objects.filter(code='X1').count() == 2

    def test_entity_only_on_used_codes(self):
        """A reserved code cannot carry an entity id."""
        with pytest.raises(IntegrityError):
            CodeRecord.objects.create(
                module='game', code='JEU00000001', status=CodeStatus.RESERVED, entity_id='4'
            )


@pytest.mark.django_db
class TestLot:
    """Test suite for Lot counters."""

    def make_lot(self, **kwargs):
        fields = {
            'module': 'game',
            'quantity': 10,
            'first_code': 'JEU00000001',
            'last_code': 'JEU00000010',
            'first_sequence': 1,
            'last_sequence': 10,
        }
        fields.update(kwargs)
        return Lot.objects.create(**fields)

    def test_derived_counters(self):
        lot = self.make_lot(used_count=4, cancelled_count=2)

        assert lot.available_count == 4
        assert lot.percent_used == 40
        assert lot.is_complete is False

    def test_stats_snapshot(self):
        lot = self.make_lot(used_count=10)

        stats = lot.stats()

        assert stats.id == lot.pk
        assert stats.is_complete is True
        assert stats.available_count == 0

    def test_counters_constraint(self):
        """used + cancelled can never exceed quantity."""
        with pytest.raises(IntegrityError):
            self.make_lot(used_count=8, cancelled_count=3)

    def test_quantity_positive(self):
        with pytest.raises(IntegrityError):
            self.make_lot(quantity=0)
