"""
Tests for the per-provider record mappers.
"""
from datetime import date

from comps_api.data.mappers import (
    build_address,
    extract_items,
    map_all,
    map_avm_response,
    map_property_record,
    map_realie_comparable,
    map_rentcast_listing,
    map_sale_listing,
    newest_first,
)
from comps_api.data.base import Comp


class TestRealieMapper:

    def test_maps_transfer_fields(self):
        comp = map_realie_comparable({
            "addressFull": "1520 Elm Dr, Springfield, IL 62704",
            "transferPrice": "225,000",
            "transferDate": "20240612",
            "buildingArea": 1600,
            "totalBedrooms": 3,
            "totalBathrooms": 2.5,
            "yearBuilt": 1962,
            "parcelId": 1422310017,
            "latitude": 39.785,
            "longitude": -89.66,
            "garageCount": "2",
            "stories": 1,
        })
        assert comp.address == "1520 Elm Dr, Springfield, IL 62704"
        assert comp.sale_price == 225000.0
        assert comp.sale_date == "2024-06-12"
        assert comp.sqft == 1600
        assert comp.beds == 3 and comp.baths == 2.5
        assert comp.year_built == 1962
        assert comp.id == "1422310017"
        assert comp.parking_spaces == 2
        assert comp.levels == 1
        assert comp.distance is None

    def test_street_parts_joined(self):
        comp = map_realie_comparable({"address": "1520 Elm Dr", "city": "Springfield",
                                      "state": "IL", "zipCode": "62704"})
        assert comp.address == "1520 Elm Dr, Springfield, IL, 62704"

    def test_item_without_address_dropped(self):
        assert map_realie_comparable({"transferPrice": 100000}) is None
        assert map_realie_comparable("not a dict") is None


class TestRentCastListingMapper:

    def test_avm_comparable(self):
        comp = map_rentcast_listing({
            "id": "512-Oak-Ave,-Springfield,-IL-62704",
            "formattedAddress": "512 Oak Ave, Springfield, IL 62704",
            "price": 198500,
            "listedDate": "2024-11-02T00:00:00.000Z",
            "removedDate": "2024-12-20T00:00:00.000Z",
            "daysOnMarket": 48,
            "distance": 0.12,
            "bedrooms": 3,
            "bathrooms": 2,
            "squareFootage": 1450,
        }, today=date(2025, 3, 1))
        assert comp.address == "512 Oak Ave, Springfield, IL 62704"
        assert comp.sale_price == 198500.0
        assert comp.sale_date == "2024-11-02"
        assert comp.dom == 48
        assert comp.distance == 0.12

    def test_sold_date_preferred_over_listed_date(self):
        comp = map_rentcast_listing({"address": "1 A St", "soldDate": "2024-10-01",
                                     "listedDate": "2024-08-01"}, today=date(2025, 1, 1))
        assert comp.sale_date == "2024-10-01"

    def test_future_listed_date_ignored(self):
        comp = map_rentcast_listing({"address": "1 A St", "listedDate": "2025-06-01"},
                                    today=date(2025, 1, 1))
        assert comp.sale_date is None

    def test_secondary_attributes(self):
        comp = map_rentcast_listing({
            "addressLine1": "9 Birch Ln", "city": "Springfield", "state": "IL", "zipCode": "62704",
            "basementType": "Finished", "garageType": "Attached", "garageSpaces": "two",
            "numberOfStories": 2,
        })
        assert comp.address == "9 Birch Ln, Springfield, IL, 62704"
        assert comp.basement == "Finished"
        assert comp.basement_type == "Finished"
        assert comp.parking_type == "Attached"
        assert comp.parking_spaces == "two"
        assert comp.levels == 2


class TestPropertyRecordMapper:

    def test_last_sale_fields(self):
        comp = map_property_record({
            "formattedAddress": "77 Cedar Ct, Springfield, IL 62704",
            "lastSalePrice": 240000,
            "lastSaleDate": "2024-09-30T00:00:00.000Z",
            "bedrooms": 4,
            "features": {"garageType": "Detached", "garageSpaces": 2, "floorCount": 2},
        })
        assert comp.sale_price == 240000.0
        assert comp.sale_date == "2024-09-30"
        assert comp.parking_type == "Detached"
        assert comp.parking_spaces == 2
        assert comp.levels == 2

    def test_history_dict_uses_latest_event(self):
        comp = map_property_record({
            "formattedAddress": "77 Cedar Ct, Springfield, IL 62704",
            "history": {
                "2019-04-01": {"event": "Sale", "date": "2019-04-01T00:00:00.000Z", "price": 180000},
                "2024-05-15": {"event": "Sale", "date": "2024-05-15T00:00:00.000Z", "price": 236000},
            },
        })
        assert comp.sale_price == 236000.0
        assert comp.sale_date == "2024-05-15"

    def test_history_list(self):
        comp = map_property_record({
            "address": "77 Cedar Ct",
            "history": [{"salePrice": 150000, "saleDate": "2023-02-01", "daysOnMarket": 12}],
        })
        assert comp.sale_price == 150000.0
        assert comp.dom == 12

    def test_no_sale_data(self):
        comp = map_property_record({"address": "77 Cedar Ct"})
        assert comp.sale_price is None
        assert comp.sale_date is None


class TestAvmMapper:

    def test_subject_is_a_typed_record(self):
        batch = map_avm_response({
            "price": "215,000",
            "subjectProperty": {"formattedAddress": "500 Oak Ave, Springfield, IL 62704",
                                "bedrooms": 3, "latitude": "39.78", "longitude": -89.65},
            "comparables": [{"formattedAddress": "512 Oak Ave", "price": 198500}],
        })
        assert batch.avm_value == 215000.0
        assert isinstance(batch.avm_subject, Comp)
        assert batch.avm_subject.address == "500 Oak Ave, Springfield, IL 62704"
        assert batch.avm_subject.beds == 3
        assert batch.subject_point == (39.78, -89.65)
        assert [c.address for c in batch.comps] == ["512 Oak Ave"]

    def test_top_level_coordinates_fill_subject(self):
        batch = map_avm_response({"latitude": 39.78, "longitude": -89.65,
                                  "subjectProperty": {"formattedAddress": "500 Oak Ave"}})
        assert (batch.avm_subject.latitude, batch.avm_subject.longitude) == (39.78, -89.65)
        assert batch.subject_point == (39.78, -89.65)

    def test_coordinates_without_subject_record(self):
        batch = map_avm_response({"price": 200000, "latitude": 39.78, "longitude": -89.65})
        assert batch.avm_subject is None
        assert batch.subject_point == (39.78, -89.65)

    def test_no_usable_coordinates(self):
        batch = map_avm_response({"latitude": "n/a", "subjectProperty": {"formattedAddress": "500 Oak Ave"}})
        assert batch.subject_point is None
        assert batch.avm_value is None

    def test_not_a_dict(self):
        batch = map_avm_response(None)
        assert batch.comps == [] and batch.avm_subject is None and batch.subject_point is None


class TestSaleListingMapper:

    def test_wrapped_and_bare(self):
        item = {"formattedAddress": "500 Oak Ave", "price": 230000}
        assert map_sale_listing({"data": item}).sale_price == 230000.0
        assert map_sale_listing(item).address == "500 Oak Ave"
        assert map_sale_listing([item]) is None


class TestHelpers:

    def test_extract_items_envelopes(self):
        assert extract_items([{"a": 1}, None, "x"]) == [{"a": 1}]
        assert extract_items({"properties": [{"a": 1}]}, "properties") == [{"a": 1}]
        assert extract_items({"data": [{"a": 1}]}, "listings", "data") == [{"a": 1}]
        assert extract_items({"message": "oops"}, "data") == []
        assert extract_items(None, "data") == []

    def test_build_address_city_state_only(self):
        assert build_address({"city": "Springfield", "state": "IL"}, "address") == "Springfield, IL"

    def test_map_all_drops_unaddressed(self):
        comps = map_all([{"address": "1 A St"}, {"price": 5}], map_rentcast_listing)
        assert [c.address for c in comps] == ["1 A St"]

    def test_newest_first(self):
        comps = [Comp(address="a", sale_date="2024-01-01"), Comp(address="b"),
                 Comp(address="c", sale_date="2024-06-01")]
        assert [c.address for c in newest_first(comps)] == ["c", "a", "b"]
