from tests.factories import make_inventory_item


def item_payload(**overrides):
    payload = {
        "name": "Burger Patty",
        "category": "Meat",
        "current_stock": 50,
        "min_stock": 10,
        "max_stock": 100,
        "unit": "pieces",
        "cost_per_unit": 1.75,
        "supplier": "Prime Meats",
    }
    payload.update(overrides)
    return payload


async def test_admin_creates_inventory_item(client, act_as, admin):
    act_as(admin)

    resp = await client.post("/inventory/items", json=item_payload())

    assert resp.status_code == 201
    body = resp.json()
    assert body["category"] == "meat"
    assert body["stock_status"] == "good"
    assert body["total_value"] == 87.5
    assert body["is_active"] is True


async def test_duplicate_active_name_is_rejected(client, act_as, admin):
    act_as(admin)
    await client.post("/inventory/items", json=item_payload())

    resp = await client.post("/inventory/items", json=item_payload(name="burger patty"))

    assert resp.status_code == 409


async def test_name_can_be_reused_after_soft_delete(client, act_as, admin):
    act_as(admin)
    created = (await client.post("/inventory/items", json=item_payload())).json()

    resp = await client.delete(f"/inventory/items/{created['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Inventory item deleted successfully"}

    resp = await client.post("/inventory/items", json=item_payload())
    assert resp.status_code == 201


async def test_create_rejects_max_below_min(client, act_as, admin):
    act_as(admin)
    resp = await client.post("/inventory/items", json=item_payload(min_stock=20, max_stock=5))
    assert resp.status_code == 422


async def test_update_rejects_max_below_min(client, db, act_as, admin):
    item = await make_inventory_item(db, "Milk", min_stock=10, max_stock=40)
    act_as(admin)

    resp = await client.put(f"/inventory/items/{item.id}", json={"max_stock": 5})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Maximum stock must be greater than or equal to minimum stock"


async def test_stock_update_records_adjustment_and_restock_time(client, db, act_as, admin):
    item = await make_inventory_item(db, "Milk", current_stock=4, min_stock=10, unit="liters")
    act_as(admin)

    resp = await client.put(f"/inventory/items/{item.id}", json={"current_stock": 24})

    assert resp.status_code == 200
    body = resp.json()
    assert body["current_stock"] == 24
    assert body["last_restocked"] is not None

    resp = await client.get("/inventory/movements", params={"inventory_item_id": str(item.id)})
    movements = resp.json()
    assert len(movements) == 1
    assert movements[0]["source_type"] == "adjustment"
    assert movements[0]["change"] == 20
    assert movements[0]["created_by_user_id"] == str(admin.id)


async def test_list_filters_by_stock_status_and_category(client, db, act_as, admin):
    await make_inventory_item(db, "Flour", current_stock=2, min_stock=10, category="grains")
    await make_inventory_item(db, "Rice", current_stock=8, min_stock=10, category="grains")
    await make_inventory_item(db, "Milk", current_stock=50, min_stock=10, category="dairy")
    await make_inventory_item(db, "Cream", current_stock=1, min_stock=10, category="dairy", is_active=False)
    act_as(admin)

    critical = (await client.get("/inventory/items", params={"stock_status": "critical"})).json()
    low = (await client.get("/inventory/items", params={"stock_status": "low"})).json()
    grains = (await client.get("/inventory/items", params={"category": "grains"})).json()
    everything = (await client.get("/inventory/items", params={"limit": 2})).json()

    assert [i["name"] for i in critical["items"]] == ["Flour"]
    assert [i["name"] for i in low["items"]] == ["Rice"]
    assert [i["name"] for i in grains["items"]] == ["Flour", "Rice"]
    assert everything["total"] == 3
    assert everything["pages"] == 2
    assert [i["name"] for i in everything["items"]] == ["Flour", "Milk"]


async def test_inventory_is_admin_only(client, act_as, employee):
    act_as(employee)
    resp = await client.get("/inventory/items")
    assert resp.status_code == 403


async def test_admin_low_stock_alerts(client, db, act_as, admin):
    await make_inventory_item(db, "Milk", current_stock=8, min_stock=10)
    await make_inventory_item(db, "Flour", current_stock=1, min_stock=10)
    await make_inventory_item(db, "Rice", current_stock=80, min_stock=10)
    act_as(admin)

    resp = await client.get("/inventory/low-stock")

    assert resp.status_code == 200
    assert [i["name"] for i in resp.json()["low_stock_items"]] == ["Flour", "Milk"]
