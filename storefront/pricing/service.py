"""
Moteur de prix du checkout (montants en HTG, Decimal arrondi au centime).

Règles:
- sous-total = somme(prix catalogue x quantité)
- livraison offerte si sous-total >= FREE_SHIPPING_THRESHOLD, si l'acheteur est
  Union Plus, en retrait (pickup), ou si le panier ne contient aucun bien
  physique; sinon FLAT_SHIPPING_COST
- taxe = sous-total x TAX_RATE
- option garantie étendue (+WARRANTY_PRICE), non taxée
- remise points plafonnée (voir redeem_points)
- coupon: pourcentage ou montant fixe sur les articles concernés, ou livraison
  offerte; remise arrondie au gourde et plafonnée par max_discount
- total = sous-total + taxe + livraison + garantie - remises (jamais négatif)
"""
import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from storefront.config import (
    FREE_SHIPPING_THRESHOLD,
    FLAT_SHIPPING_COST,
    TAX_RATE,
    WARRANTY_PRICE,
    POINTS_VALUE_HTG,
    POINTS_MAX_PERCENT,
    POINTS_MIN_ORDER_HTG,
)
from storefront.offers.service import is_physical, price_from_offer

CENT = Decimal("0.01")

WARRANTY_ITEM = {
    "id": "warranty-2y",
    "title": "Garantie Étendue (2 ans)",
    "type": "service",
}

def to_decimal(value: Any) -> Decimal:
    return Decimal(str(value or 0))

def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)

def build_lines(quantities: Dict[str, int], offers_by_id: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Construit les lignes tarifées depuis le catalogue (prix DB uniquement).
    Les offres introuvables sont ignorées; validate_cart les signale en amont.
    """
    lines: List[Dict[str, Any]] = []
    for offer_id, qty in quantities.items():
        offer = offers_by_id.get(offer_id)
        if not offer or qty <= 0:
            continue
        unit_price = quantize(to_decimal(price_from_offer(offer)))
        lines.append({
            "id": offer_id,
            "title": offer.get("title") or "Article",
            "type": offer.get("type") or "physical",
            "vendor_id": offer.get("vendor_id"),
            "category": offer.get("category"),
            "unit_price": unit_price,
            "quantity": qty,
            "line_total": quantize(unit_price * qty),
            "physical": is_physical(offer),
        })
    return lines

def shipping_cost(subtotal: Decimal, *, is_union_plus: bool = False, has_physical: bool = True) -> Decimal:
    if not has_physical or is_union_plus or subtotal >= to_decimal(FREE_SHIPPING_THRESHOLD):
        return Decimal("0.00")
    return quantize(to_decimal(FLAT_SHIPPING_COST))

def tax_amount(subtotal: Decimal) -> Decimal:
    return quantize(subtotal * to_decimal(TAX_RATE))

def redeem_points(subtotal: Decimal, requested: int, balance: int) -> Tuple[int, Decimal]:
    """
    Points utilisables sur une commande.
    - rien si sous-total <= 0 ou < POINTS_MIN_ORDER_HTG
    - plafond: floor(floor(sous-total x POINTS_MAX_PERCENT / 100) / POINTS_VALUE_HTG) points
    - appliqués: min(demandés, solde, plafond)
    Retour: (points appliqués, remise HTG)
    """
    if subtotal <= 0 or subtotal < to_decimal(POINTS_MIN_ORDER_HTG) or requested <= 0:
        return 0, Decimal("0.00")
    max_discount = math.floor(subtotal * POINTS_MAX_PERCENT / 100)
    max_points = math.floor(max_discount / POINTS_VALUE_HTG)
    applied = max(0, min(int(requested), int(balance), max_points))
    return applied, quantize(Decimal(applied * POINTS_VALUE_HTG))

def coupon_discount(coupon: Optional[Dict[str, Any]], lines: List[Dict[str, Any]], subtotal: Decimal) -> Decimal:
    """
    Remise d'un coupon déjà validé.
    - applicable_products / applicable_categories / vendor_id restreignent la base de calcul
    - percentage: base x value / 100; fixed: min(value, base); free_shipping: 0
    - max_discount plafonne la remise, arrondie au gourde
    """
    if not coupon:
        return Decimal("0.00")
    base = subtotal
    products = coupon.get("applicable_products") or []
    categories = coupon.get("applicable_categories") or []
    if products or categories:
        base = sum(
            (l["line_total"] for l in lines if l["id"] in products or (l.get("category") and l.get("category") in categories)),
            Decimal("0"),
        )
    if coupon.get("vendor_id"):
        base = sum((l["line_total"] for l in lines if l.get("vendor_id") == coupon["vendor_id"]), Decimal("0"))

    value = to_decimal(coupon.get("value"))
    kind = coupon.get("type")
    if kind == "percentage":
        discount = base * value / 100
    elif kind == "fixed":
        discount = min(value, base)
    else:
        discount = Decimal("0")
    max_discount = coupon.get("max_discount")
    if max_discount and discount > to_decimal(max_discount):
        discount = to_decimal(max_discount)
    return quantize(discount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def compute_totals(
    lines: List[Dict[str, Any]],
    *,
    is_union_plus: bool = False,
    pickup: bool = False,
    warranty: bool = False,
    points_requested: int = 0,
    points_balance: int = 0,
    coupon: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Récapitulatif complet du panier (Decimal). coupon: document déjà validé (coupons.service)."""
    subtotal = quantize(sum((line["line_total"] for line in lines), Decimal("0")))
    item_count = sum(int(line["quantity"]) for line in lines)
    has_physical = any(line.get("physical") for line in lines)

    free_shipping = bool(coupon) and coupon.get("type") == "free_shipping"
    shipping = shipping_cost(subtotal, is_union_plus=is_union_plus or free_shipping, has_physical=has_physical and not pickup)
    tax = tax_amount(subtotal)
    order_bump = quantize(to_decimal(WARRANTY_PRICE)) if warranty and lines else Decimal("0.00")
    points_applied, points_discount = redeem_points(subtotal, points_requested, points_balance)
    discount = coupon_discount(coupon, lines, subtotal)

    total = subtotal + tax + shipping + order_bump - points_discount - discount
    if total < 0:
        total = Decimal("0")

    return {
        "subtotal": subtotal,
        "item_count": item_count,
        "has_physical": has_physical,
        "shipping": shipping,
        "tax": tax,
        "order_bump": order_bump,
        "points_applied": points_applied,
        "points_discount": points_discount,
        "coupon_code": coupon.get("code") if coupon else None,
        "coupon_discount": discount,
        "total": quantize(total),
        "free_shipping_remaining": max(to_decimal(FREE_SHIPPING_THRESHOLD) - subtotal, Decimal("0.00"))
        if has_physical and not (is_union_plus or pickup or free_shipping) else Decimal("0.00"),
    }

def installment_amount(total: Decimal, installments: int = 3) -> int:
    """Mensualité Union Pay: ceil(total / n), en HTG entiers."""
    return math.ceil(total / installments)

def serialize_lines(lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {**line, "unit_price": float(line["unit_price"]), "line_total": float(line["line_total"])}
        for line in lines
    ]

def serialize_totals(totals: Dict[str, Any]) -> Dict[str, Any]:
    """Decimal -> float pour les réponses JSON."""
    return {k: (float(v) if isinstance(v, Decimal) else v) for k, v in totals.items()}
