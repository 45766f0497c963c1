# product_service/main.py
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Product Service (dev mock)")


PRODUCTS = {
    1: {"id": 1, "name": "Clavier", "price": 89.90, "stock": 25},
    2: {"id": 2, "name": "Souris", "price": 35.00, "stock": 40},
    3: {"id": 3, "name": "Ecran 24\"", "price": 499.00, "stock": 8},
}


class StockDelta(BaseModel):
    delta: int


@app.get("/products/{product_id}")
def get_product(product_id: int):
    product = PRODUCTS.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.post("/products/{product_id}/stock")
def adjust_stock(product_id: int, payload: StockDelta):
    product = PRODUCTS.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    if product["stock"] + payload.delta < 0:
        raise HTTPException(status_code=409, detail="Insufficient stock")
    product["stock"] += payload.delta
    return product
