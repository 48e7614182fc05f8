# Admin GraphQL 查询文本（只读）：集合、集合下商品、单个商品、全店集合/商品列表


GET_COLLECTION = """
query GetCollection($id: ID!) {
  collection(id: $id) {
    id
    title
    handle
    updatedAt
  }
}
""".strip()


# 集合下商品分页：每页 first 个，after 为上一页 endCursor
COLLECTION_PRODUCTS = """
query CollectionProducts($id: ID!, $first: Int!, $after: String) {
  collection(id: $id) {
    id
    products(first: $first, after: $after) {
      pageInfo { hasNextPage endCursor }
      edges {
        node {
          id
          title
          handle
          status
          images(first: 10) {
            edges { node { id url altText } }
          }
          variants(first: 100) {
            edges { node { id title sku image { id } } }
          }
        }
      }
    }
  }
}
""".strip()


GET_PRODUCT = """
query GetProduct($id: ID!) {
  product(id: $id) {
    id
    title
    handle
    status
    images(first: 50) {
      edges { node { id url altText } }
    }
    variants(first: 100) {
      edges { node { id title sku image { id } } }
    }
  }
}
""".strip()


# 浏览用：全店集合 / 全店商品，单页 + 游标
LIST_COLLECTIONS = """
query ListCollections($first: Int!, $after: String) {
  collections(first: $first, after: $after) {
    pageInfo { hasNextPage endCursor }
    edges {
      node {
        id
        title
        handle
        updatedAt
        description
        productsCount { count }
      }
    }
  }
}
""".strip()


LIST_PRODUCTS = """
query ListProducts($first: Int!, $after: String) {
  products(first: $first, after: $after) {
    pageInfo { hasNextPage endCursor }
    edges {
      node {
        id
        title
        handle
        status
        images(first: 10) {
          edges { node { id url altText } }
        }
        variants(first: 100) {
          edges { node { id title sku image { id } } }
        }
      }
    }
  }
}
""".strip()
