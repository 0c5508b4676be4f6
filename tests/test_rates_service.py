"""Tests de la table de tarifs au niveau du service et du conteneur."""

import pytest
from azure.cosmos import exceptions

from cotizador.models.rate import ServiceRateInput
from cotizador.services import rates_service
from cotizador.services.rates_service import RateConflict, delete_rate, save_rate

RATE = dict(service="Data Engineer", complexity="Sr", frequency="Mensual", base_price=7000.0)


class TestContainerUniqueKey:
    def test_enforced_inside_a_partition(self, store):
        store.rates.create_item(body=dict(RATE, id="a"))
        with pytest.raises(exceptions.CosmosResourceExistsError):
            store.rates.create_item(body=dict(RATE, id="b"))

    def test_not_enforced_across_partitions(self, store):
        store.rates.create_item(body=dict(RATE, id="a"))
        store.rates.create_item(body=dict(RATE, id="b", service="DATA ENGINEER"))
        assert len(store.rates.docs) == 2

    def test_point_operations_need_the_service_partition(self, store):
        store.rates.create_item(body=dict(RATE, id="a"))
        with pytest.raises(exceptions.CosmosResourceNotFoundError):
            store.rates.delete_item(item="a", partition_key="a")


class TestSaveRate:
    def test_service_is_stripped(self, store):
        rate = save_rate(store, ServiceRateInput(**dict(RATE, service="  Data Engineer ")))
        assert store.rates.docs[rate.id]["service"] == "Data Engineer"

    def test_rejects_triplet_living_in_another_partition(self, store):
        store.rates.docs["legacy"] = dict(RATE, id="legacy", service="DATA ENGINEER")
        with pytest.raises(RateConflict):
            save_rate(store, ServiceRateInput(**RATE))
        assert list(store.rates.docs) == ["legacy"]

    def test_concurrent_write_maps_to_conflict(self, store, monkeypatch):
        store.rates.docs["first"] = dict(RATE, id="first")
        monkeypatch.setattr(rates_service, "_find_triplet", lambda *args: [])
        with pytest.raises(RateConflict):
            save_rate(store, ServiceRateInput(**RATE))

    def test_delete_uses_service_partition(self, store):
        rate = save_rate(store, ServiceRateInput(**RATE))
        assert delete_rate(store, rate.id) is True
        assert delete_rate(store, rate.id) is False
