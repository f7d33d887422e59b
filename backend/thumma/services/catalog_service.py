# Overview: Products, variants and categories.

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Category, Product, ProductVariant, User
from ..validation import (
    ModelValidationPolicy,
    baht_to_cents,
    coerce_int,
    enforce_rules_variant,
    require_localized,
    validate_payload,
)
from thumma.time_utils import utcnow
from . import cache
from .activity_service import log_activity
from .concurrency import run_in_transaction
from .inventory_service import apply_stock_change, refresh_status
from .settings_service import low_stock_threshold


VARIANT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku",
        "size",
        "barcode",
        "stock_quantity",
        "price_walk_in_cents",
        "price_contractor_cents",
        "price_government_cents",
        "cost_price_cents",
    },
    required_on_create={"sku"},
)

_PRICE_COLUMNS = {
    "walk_in": "price_walk_in_cents",
    "contractor": "price_contractor_cents",
    "government": "price_government_cents",
    "cost": "cost_price_cents",
}


def _variant_patch(raw: dict, *, partial: bool) -> dict:
    """Flatten the API variant shape ({stock, price: {...}}) into column names and validate."""
    if not isinstance(raw, dict):
        raise ValidationError("Each variant must be an object")
    data = {k: v for k, v in raw.items() if k not in ("id", "price", "stock", "status", "history", "product_id")}
    if "stock" in raw:
        data["stock_quantity"] = raw["stock"]
    price = raw.get("price")
    if price is not None:
        if not isinstance(price, dict):
            raise ValidationError("price must be an object")
        for key, column in _PRICE_COLUMNS.items():
            if key in price:
                data[column] = price[key]
    if "barcode" in data and data["barcode"] in ("", None):
        data["barcode"] = None
    if data.get("size") is None or str(data.get("size")).strip() == "":
        data.pop("size", None)
    patch = validate_payload(model=ProductVariant, payload=data, policy=VARIANT_POLICY, partial=partial)
    enforce_rules_variant(patch)
    return patch


def _ensure_sku_free(sku: str, exclude_variant_id: int | None = None) -> None:
    query = db.session.query(ProductVariant).filter(ProductVariant.sku == sku)
    if exclude_variant_id is not None:
        query = query.filter(ProductVariant.id != exclude_variant_id)
    if query.first():
        raise ConflictError(f"SKU already exists: {sku}", {"sku": sku})


def _ensure_category(slug: str) -> None:
    if not db.session.query(Category).filter_by(slug=slug).first():
        raise ValidationError(f"Unknown category: {slug}")


# -- products --

def list_products() -> list[dict]:
    def _load():
        products = db.session.query(Product).order_by(Product.id.asc()).all()
        return [p.to_dict() for p in products]
    return cache.get_or_load(cache.PRODUCTS, "all", _load)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def create_product(payload: dict, user: User) -> Product:
    name = require_localized("name", payload.get("name"))
    description = require_localized("description", payload.get("description"), required=False)
    category = str(payload.get("category") or "").strip()
    if not category:
        raise ValidationError("category is required")
    variants_raw = payload.get("variants") or []
    if not isinstance(variants_raw, list) or not variants_raw:
        raise ValidationError("A product needs at least one variant")
    patches = [_variant_patch(v, partial=False) for v in variants_raw]

    skus = [p["sku"] for p in patches]
    if len(set(skus)) != len(skus):
        raise ConflictError("Duplicate SKU within product")

    def _op():
        _ensure_category(category)
        threshold = low_stock_threshold()
        product = Product(
            name=name,
            description=description,
            category=category,
            image_url=payload.get("image_url") or None,
        )
        db.session.add(product)
        db.session.flush()
        for patch in patches:
            _ensure_sku_free(patch["sku"])
            _add_variant(product, patch, user, threshold)
        log_activity(user, f"Added new product: {name['en']}")
        return product

    return run_in_transaction(_op, invalidates=(cache.PRODUCTS,))


def _add_variant(product: Product, patch: dict, user: User, threshold: int) -> ProductVariant:
    initial_stock = patch.pop("stock_quantity", 0) or 0
    variant = ProductVariant(product_id=product.id, stock_quantity=0, **patch)
    db.session.add(variant)
    db.session.flush()
    if initial_stock:
        apply_stock_change(variant, initial_stock, reason="Initial stock", operator=user.name, threshold=threshold)
    else:
        refresh_status(variant, threshold)
    return variant


def update_product(product_id: int, payload: dict, user: User) -> Product:
    """
    Update product fields and reconcile variants.

    Variants with an id are patched, variants without an id are added, and
    existing variants missing from the list are removed. Stock differences
    are recorded as movements.
    """
    def _op():
        product = get_product(product_id)
        if "name" in payload:
            product.name = require_localized("name", payload["name"])
        if "description" in payload:
            product.description = require_localized("description", payload["description"], required=False)
        if "category" in payload:
            category = str(payload["category"] or "").strip()
            _ensure_category(category)
            product.category = category
        if "image_url" in payload:
            product.image_url = payload["image_url"] or None

        if "variants" in payload:
            _reconcile_variants(product, payload["variants"] or [], user)

        log_activity(user, f"Edited product: {product.name.get('en', '')}")
        return product

    return run_in_transaction(_op, invalidates=(cache.PRODUCTS,))


def _reconcile_variants(product: Product, variants_raw: list, user: User) -> None:
    if not isinstance(variants_raw, list) or not variants_raw:
        raise ValidationError("A product needs at least one variant")
    threshold = low_stock_threshold()
    existing = {v.id: v for v in product.variants}
    keep: set[int] = set()

    for raw in variants_raw:
        variant_id = raw.get("id") if isinstance(raw, dict) else None
        if variant_id is not None:
            variant_id = coerce_int("variant id", variant_id)
            variant = existing.get(variant_id)
            if variant is None:
                raise NotFoundError(f"Variant {variant_id} not found on product {product.id}")
            patch = _variant_patch(raw, partial=True)
            if "sku" in patch:
                _ensure_sku_free(patch["sku"], exclude_variant_id=variant.id)
            new_stock = patch.pop("stock_quantity", None)
            for key, value in patch.items():
                setattr(variant, key, value)
            if new_stock is not None and new_stock != variant.stock_quantity:
                apply_stock_change(
                    variant,
                    new_stock - variant.stock_quantity,
                    reason="Manual edit",
                    operator=user.name,
                    threshold=threshold,
                )
            keep.add(variant.id)
        else:
            patch = _variant_patch(raw, partial=False)
            _ensure_sku_free(patch["sku"])
            variant = _add_variant(product, patch, user, threshold)
            keep.add(variant.id)

    for variant_id, variant in existing.items():
        if variant_id not in keep:
            product.variants.remove(variant)


def delete_product(product_id: int, user: User) -> None:
    def _op():
        product = get_product(product_id)
        name = product.name.get("en", "")
        db.session.delete(product)
        log_activity(user, f"Deleted product: {name}")

    run_in_transaction(_op, invalidates=(cache.PRODUCTS,))


# -- categories --

def list_categories() -> list[dict]:
    def _load():
        rows = db.session.query(Category).order_by(Category.display_order.asc(), Category.id.asc()).all()
        return [c.to_dict() for c in rows]
    return cache.get_or_load(cache.CATEGORIES, "all", _load)


def category_tree() -> list[dict]:
    """Main categories with their subcategories nested under 'children'."""
    flat = list_categories()
    by_parent: dict = {}
    for item in flat:
        by_parent.setdefault(item["parent_id"], []).append(item)
    return [
        dict(item, children=by_parent.get(item["id"], []))
        for item in by_parent.get(None, [])
    ]


def _get_category(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if not category:
        raise NotFoundError(f"Category {category_id} not found")
    return category


def _clean_slug(value) -> str:
    slug = str(value or "").strip().lower()
    if not slug:
        raise ValidationError("slug is required")
    if len(slug) > 128:
        raise ValidationError("slug exceeds max length 128")
    return slug


def create_category(payload: dict, user: User) -> Category:
    name = require_localized("name", payload.get("name"))
    slug = _clean_slug(payload.get("slug"))
    parent_id = payload.get("parent_id")
    display_order = coerce_int("display_order", payload.get("display_order", 0))

    def _op():
        if db.session.query(Category).filter_by(slug=slug).first():
            raise ConflictError(f"Category slug already exists: {slug}")
        if parent_id is not None:
            parent = _get_category(coerce_int("parent_id", parent_id))
            if parent.parent_id is not None:
                raise ValidationError("Categories can only be nested one level deep")
        category = Category(
            name=name,
            slug=slug,
            parent_id=parent_id,
            display_order=display_order,
            created_at=utcnow(),
            updated_at=utcnow(),
        )
        db.session.add(category)
        db.session.flush()
        log_activity(user, f"Added category: {name['en']}")
        return category

    return run_in_transaction(_op, invalidates=(cache.CATEGORIES,))


def update_category(category_id: int, payload: dict, user: User) -> Category:
    def _op():
        category = _get_category(category_id)
        if "name" in payload:
            category.name = require_localized("name", payload["name"])
        if "display_order" in payload:
            category.display_order = coerce_int("display_order", payload["display_order"])
        if "slug" in payload:
            slug = _clean_slug(payload["slug"])
            if slug != category.slug:
                if db.session.query(Category).filter_by(slug=slug).first():
                    raise ConflictError(f"Category slug already exists: {slug}")
                db.session.query(Product).filter_by(category=category.slug).update(
                    {"category": slug}, synchronize_session=False
                )
                category.slug = slug
        if "parent_id" in payload:
            parent_id = payload["parent_id"]
            if parent_id is not None:
                parent_id = coerce_int("parent_id", parent_id)
                if parent_id == category.id:
                    raise ValidationError("A category cannot be its own parent")
                if _get_category(parent_id).parent_id is not None or category.children:
                    raise ValidationError("Categories can only be nested one level deep")
            category.parent_id = parent_id
        category.updated_at = utcnow()
        log_activity(user, f"Edited category: {category.name.get('en', '')}")
        return category

    return run_in_transaction(_op, invalidates=(cache.CATEGORIES, cache.PRODUCTS))


def delete_category(category_id: int, user: User) -> None:
    def _op():
        category = _get_category(category_id)
        if category.children:
            raise ConflictError("Category has subcategories")
        in_use = db.session.query(Product).filter_by(category=category.slug).count()
        if in_use:
            raise ConflictError("Category is used by products", {"product_count": in_use})
        db.session.delete(category)
        log_activity(user, f"Deleted category: {category.name.get('en', '')}")

    run_in_transaction(_op, invalidates=(cache.CATEGORIES,))


# -- import --

def _row_value(row: dict, key: str):
    """Column lookup ignoring case and surrounding spaces in the header."""
    for column, value in row.items():
        if str(column or "").strip().lower() == key.lower():
            if isinstance(value, str):
                value = value.strip()
            return value if value not in ("", None) else None
    return None


def _find_category_slug(main_name: str, sub_name: str) -> str | None:
    mains = db.session.query(Category).filter(Category.parent_id.is_(None)).all()
    main = next((c for c in mains if (c.name or {}).get("en", "").strip().lower() == main_name.lower()), None)
    if main is None:
        return None
    sub = next((c for c in main.children if (c.name or {}).get("en", "").strip().lower() == sub_name.lower()), None)
    return sub.slug if sub else None


_IMPORT_PRICE_COLUMNS = {
    "walk_in": "Walk-in Price",
    "contractor": "Contractor Price",
    "government": "Government Price",
    "cost": "Cost Price",
}


def _imported_variant(row: dict, sku: str) -> dict:
    """Variant fields present in the row; blank cells leave the stored value alone."""
    raw: dict = {"sku": sku}
    size = _row_value(row, "Variant Size")
    if size is not None:
        raw["size"] = str(size)
    barcode = _row_value(row, "Barcode")
    if barcode is not None:
        raw["barcode"] = str(barcode)
    stock = _row_value(row, "Stock")
    if stock is not None:
        if isinstance(stock, float) and stock.is_integer():
            # Spreadsheet cells come back as floats
            stock = int(stock)
        raw["stock"] = coerce_int("Stock", stock if isinstance(stock, int) else str(stock))
    price = {}
    for key, column in _IMPORT_PRICE_COLUMNS.items():
        amount = baht_to_cents(_row_value(row, column))
        if amount is not None:
            price[key] = amount
    if price:
        raw["price"] = price
    return _variant_patch(raw, partial=False)


def import_products(rows: list[dict], user: User) -> dict:
    """
    Create products and update variants from parsed spreadsheet rows.

    A row whose SKU exists updates that variant (size, prices, barcode, stock).
    A new SKU needs Product Name, Main Category and Sub Category; rows with the
    same Product Name become variants of one new product. Rows that cannot be
    used are skipped and reported; the usable rows are written in one unit of
    work.
    """
    existing = {v.sku: v for v in db.session.query(ProductVariant).all()}
    updates: list[tuple[int, dict]] = []
    new_products: dict[str, dict] = {}
    errors: list[str] = []

    for index, row in enumerate(rows or []):
        line = index + 2
        if not isinstance(row, dict) or not any(v not in (None, "") for v in row.values()):
            continue
        sku = _row_value(row, "SKU")
        if sku is None:
            errors.append(f"Row {line}: Missing required 'SKU'. Row skipped.")
            continue
        sku = str(sku)
        try:
            patch = _imported_variant(row, sku)
        except ValidationError as exc:
            errors.append(f"Row {line}: {exc.message}. Row skipped.")
            continue

        if sku in existing:
            updates.append((existing[sku].id, patch))
            continue

        product_name = _row_value(row, "Product Name")
        main_name = _row_value(row, "Main Category")
        sub_name = _row_value(row, "Sub Category")
        if not product_name or not main_name or not sub_name:
            errors.append(
                f"Row {line}: New SKU \"{sku}\" requires a 'Product Name', 'Main Category', and 'Sub Category'. Row skipped."
            )
            continue
        slug = _find_category_slug(str(main_name), str(sub_name))
        if slug is None:
            errors.append(f"Row {line}: Category \"{main_name} / {sub_name}\" not found. Row skipped.")
            continue

        product_name = str(product_name)
        entry = new_products.setdefault(product_name, {
            "name": {"en": product_name, "th": product_name},
            "description": {
                "en": str(_row_value(row, "Description (EN)") or ""),
                "th": str(_row_value(row, "Description (TH)") or ""),
            },
            "category": slug,
            "image_url": _row_value(row, "Image URL"),
            "variants": [],
        })
        if any(v["sku"] == sku for v in entry["variants"]):
            errors.append(f"Row {line}: Duplicate SKU \"{sku}\" in file. Row skipped.")
            continue
        patch.setdefault("size", "Standard")
        entry["variants"].append(patch)

    if not updates and not new_products:
        raise ValidationError("No products found to import", {"errors": errors})

    def _op():
        threshold = low_stock_threshold()
        created = []
        for data in new_products.values():
            product = Product(
                name=data["name"],
                description=data["description"],
                category=data["category"],
                image_url=data["image_url"],
            )
            db.session.add(product)
            db.session.flush()
            for patch in data["variants"]:
                _add_variant(product, dict(patch), user, threshold)
            created.append(product)

        updated = []
        for variant_id, patch in updates:
            variant = db.session.get(ProductVariant, variant_id)
            patch = dict(patch)
            patch.pop("sku", None)
            new_stock = patch.pop("stock_quantity", None)
            for key, value in patch.items():
                setattr(variant, key, value)
            if new_stock is not None and new_stock != variant.stock_quantity:
                apply_stock_change(
                    variant,
                    new_stock - variant.stock_quantity,
                    reason="Import",
                    operator=user.name,
                    threshold=threshold,
                )
            updated.append(variant)

        log_activity(user, f"Imported products: {len(created)} created, {len(updated)} variants updated.")
        return {"created": created, "updated": updated}

    result = run_in_transaction(_op, invalidates=(cache.PRODUCTS,))
    result["errors"] = errors
    result["skipped"] = len(errors)
    return result
