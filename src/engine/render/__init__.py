"""
どこで: `engine.render` サブパッケージ。
何を: 同期層が依存するバックエンド契約と、ヘッドレスのインメモリ実装を提供。
なぜ: 具体的な描画ライブラリへの依存を境界の外に置き、同期アルゴリズムを単体で検証可能にするため。
"""
