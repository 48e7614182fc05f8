
import sys

from app.integrations.shopify.shopify_client import ShopifyClient

if __name__ == "__main__":
    cli = ShopifyClient()
    data = cli.ping()
    print(data)

    # 可选：传集合 gid，顺便看看模板会用到的商品/首图
    if len(sys.argv) > 1:
        collection = cli.get_collection(sys.argv[1])
        products = cli.get_products_from_collection(collection.id, limit=5)
        print(f"[collection] {collection.title} ({collection.handle}) products={len(products)}")
        for p in products:
            first_image = p.images[0].id if p.images else "-"
            print(f"  {p.id} {p.handle} first_image={first_image} variants={len(p.variants)}")


# 运行
# export $(grep -v '^#' .env | xargs)   # 若你用 .env
# PYTHONPATH=backend python scripts/ping_shopify.py [gid://shopify/Collection/123]



# 看到返回 shop.name / myshopifyDomain / plan.displayName 说明域名、版本、token 都 OK
